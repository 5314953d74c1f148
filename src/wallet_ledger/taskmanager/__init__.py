"""Task manager: periodic cron jobs and one-shot background tasks.

``TaskManager`` runs:
- Periodic exchange rate refresh
- One-shot payment settlement (ledger recording, balance and history refresh)

Uses ``asyncio`` tasks for scheduling.
"""

from __future__ import annotations

from wallet_ledger.taskmanager.manager import CronJob, TaskFailure, TaskManager

__all__ = ["CronJob", "TaskFailure", "TaskManager"]
