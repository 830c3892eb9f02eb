"""
Bank statement ingestion → contributor matching → per-church ledger

A deterministic, testable engine that reads church bank statements of
unknown layout, discovers their columns heuristically, and reconciles the
resulting transactions against each church's expected-contribution list.
"""

__version__ = "0.1.0"
