"""Sales ledger models"""
