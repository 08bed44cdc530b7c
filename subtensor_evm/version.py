import importlib.metadata

# single source of truth is setup.py
__version__ = importlib.metadata.version("subtensor-evm")
