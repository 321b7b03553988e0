"""
Channel Feed - Telegram channel posts ingestion and paginated feed API
"""
__version__ = "1.0.0"
