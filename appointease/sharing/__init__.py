"""Public appointment sharing — share tokens and calendar export."""

from appointease.sharing.service import share_service

__all__ = ["share_service"]
