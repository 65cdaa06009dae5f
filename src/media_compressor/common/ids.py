"""
Генерация идентификаторов задач.

task_id уникален на время жизни записи статуса и служит
именем рабочей директории задачи.
"""

from __future__ import annotations

import uuid


def new_task_id() -> str:
    """UUIDv4 строкой."""
    return str(uuid.uuid4())
