"""
Ledger read side.

  - types: typed views over jsonParsed transactions and token accounts
  - client: async JSON-RPC reader (no writes)
"""
