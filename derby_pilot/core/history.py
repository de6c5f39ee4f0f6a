from typing import Optional, List

from .commands import DriveCommand, Goal


class CommandHistory:
    """
    Append-only log of drive commands sent to the car, oldest first.

    The navigation engine only reads it; the dispatcher appends after a
    successful publish. `retention` optionally bounds the log: once full, the
    oldest 10% of entries are dropped before appending.
    """
    def __init__(self, retention: Optional[int] = None):
        self.retention = retention
        self._commands: List[DriveCommand] = []

    def append(self, command: DriveCommand):
        command.finalize()
        if self.retention and len(self._commands) >= self.retention:
            del self._commands[:max(1, len(self._commands) // 10)]
        self._commands.append(command)

    def count_consecutive(self, goal: Goal) -> int:
        """Number of most recent commands carrying `goal`, counted back to the first mismatch."""
        count = 0
        for command in reversed(self._commands):
            if command.goal != goal:
                break
            count += 1
        return count

    def latest(self) -> Optional[DriveCommand]:
        return self._commands[-1] if self._commands else None

    def last_goal(self) -> Optional[Goal]:
        latest = self.latest()
        return latest.goal if latest is not None else None

    def clear(self):
        self._commands = []

    def __len__(self):
        return len(self._commands)

    def __iter__(self):
        return iter(list(self._commands))

    def __getitem__(self, index):
        return self._commands[index]
