"""
Vegetable warehouse orchestration.

- order_parser: free-text orders and shortage confirmations
- reconciler: stock checks and chat replies
- scheduler: auction that binds queued items to idle agents
- robots: per-agent pick / deliver / return state machine
- state_store: the single locked store every inbound operation goes through
"""
