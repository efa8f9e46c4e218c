# MovieSync platform: reconciliation engine plus local store, config and logging.
__version__ = "1.0.0"
