"""Energy rent core: conversation state machine and account ledger."""

__version__ = "0.1.0"
