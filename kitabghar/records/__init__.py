"""Records -- typed rows and the persistence layer they live in.

Two store implementations share one async contract:
- ``JsonRecordStore``: local JSON files, used in development and tests
- ``SupabaseRecordStore``: hosted Postgres via PostgREST
"""

from kitabghar.records.store import JsonRecordStore, RecordStore
from kitabghar.records.supabase import SupabaseRecordStore

__all__ = ["JsonRecordStore", "RecordStore", "SupabaseRecordStore"]
