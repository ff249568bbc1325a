"""
Ledger snapshot service: FastAPI app plus a scheduled rebuild worker.
"""
