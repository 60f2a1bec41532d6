"""
Persistence layer

Supabase-backed services for site content, job tracking rows, generated
assets and the credit ledger.
"""

from .client import get_supabase_admin_client, SupabaseClientError
from .credits import (
    CreditService,
    CreditBalance,
    SpendResult,
    InsufficientCreditsError,
    CreditLedgerError,
)
from .sites import SiteService, SiteStatus
from .jobs import JobTrackingService, TrackingStatus
from .storage import StorageService

__all__ = [
    "get_supabase_admin_client",
    "SupabaseClientError",
    "CreditService",
    "CreditBalance",
    "SpendResult",
    "InsufficientCreditsError",
    "CreditLedgerError",
    "SiteService",
    "SiteStatus",
    "JobTrackingService",
    "TrackingStatus",
    "StorageService",
]
