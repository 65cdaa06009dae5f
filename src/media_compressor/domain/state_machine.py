"""
Машина состояний фоновой задачи конвертации.

Назначение:
- Централизованная проверка переходов
- Без повторного входа в состояние и без ретраев
- failed достижим из любого нетерминального состояния
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .enums import JobState

# =============================================================================
# РАЗРЕШЁННЫЕ ПЕРЕХОДЫ
# =============================================================================
_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.created: frozenset({JobState.fetching, JobState.acquired, JobState.failed}),
    JobState.fetching: frozenset({JobState.acquired, JobState.failed}),
    JobState.acquired: frozenset({JobState.transforming, JobState.failed}),
    JobState.transforming: frozenset({JobState.finalized, JobState.failed}),
    JobState.finalized: frozenset(),
    JobState.failed: frozenset(),
}


def is_terminal(state: JobState) -> bool:
    return not _TRANSITIONS[state]


def can_transition(current: JobState, target: JobState) -> bool:
    return target in _TRANSITIONS[current]


class InvalidTransition(RuntimeError):
    pass


# =============================================================================
# МАШИНА СОСТОЯНИЙ ОДНОЙ ЗАДАЧИ
# =============================================================================
@dataclass
class JobStateMachine:
    task_id: str
    state: JobState = JobState.created
    history: list[JobState] = field(default_factory=lambda: [JobState.created])

    def advance(self, target: JobState) -> JobState:
        """
        Правила перехода:
        - только вперёд по цепочке created → (fetching) → acquired → transforming → finalized
        - failed из любого нетерминального состояния
        - из терминального состояния переходов нет
        """
        if is_terminal(self.state):
            raise InvalidTransition(f"{self.task_id}: already {self.state.value}")
        if not can_transition(self.state, target):
            raise InvalidTransition(f"{self.task_id}: {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)
        return target
