"""Journal store drivers."""

from chaindag.drivers.journal_store.file import FileJournalStore, check_deployment_id
from chaindag.drivers.journal_store.memory import InMemoryJournalStore

__all__ = ["FileJournalStore", "InMemoryJournalStore", "check_deployment_id"]
