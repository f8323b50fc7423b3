from .message_ingestion import IngestionResult, MessageIngestion

__all__ = ["IngestionResult", "MessageIngestion"]
