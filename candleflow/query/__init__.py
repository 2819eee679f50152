"""
Query Layer

HTTP access to stored candles and engine status.
"""
