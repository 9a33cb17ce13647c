import os

# The ledger engine is created at import time; point it at a throwaway file.
os.environ.setdefault("FAUCET_DATABASE_URL", "sqlite:///./test.db")
