"""Player record models."""

from .player import RawCandidateRecord, StoredPlayerRecord, ValidatedPlayerRecord, identity_key

__all__ = ["RawCandidateRecord", "StoredPlayerRecord", "ValidatedPlayerRecord", "identity_key"]
