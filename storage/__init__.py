"""
Storage Module
Quota ledger and generation history
"""
from .history import GenerationHistory, link_topic
from .quota_ledger import InMemoryQuotaLedger, JsonFileQuotaLedger, QuotaLedger, get_quota_ledger

__all__ = [
    "GenerationHistory",
    "InMemoryQuotaLedger",
    "JsonFileQuotaLedger",
    "QuotaLedger",
    "get_quota_ledger",
    "link_topic",
]
