#!/usr/bin/env python3
"""
Progress Events Module

Progress events for a copy, the observer interface that receives them,
and the adapter turning SCP progress callbacks into events.
"""

import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from scp_password.utils import build_logger

logger = build_logger(__name__)


@dataclass
class ProgressEvent:
    """Base progress event"""
    task_id: str
    timestamp: float
    data: Dict[str, Any]

    def __init__(self, task_id: str, **kwargs):
        self.task_id = task_id
        self.timestamp = time.time()
        self.data = kwargs


class TaskStartedEvent(ProgressEvent):

    def __init__(self, task_id: str, description: str, total: float, **kwargs):
        super().__init__(task_id, description=description, total=total, **kwargs)

    @property
    def description(self) -> str:
        return self.data.get('description', 'Copying...')

    @property
    def total(self) -> float:
        return self.data.get('total', 0)


class ProgressAdvancedEvent(ProgressEvent):

    def __init__(self, task_id: str, advance: float, **kwargs):
        super().__init__(task_id, advance=advance, **kwargs)

    @property
    def advance(self) -> float:
        return self.data.get('advance', 0)


class TaskFinishedEvent(ProgressEvent):

    def __init__(self, task_id: str, success: bool = True, **kwargs):
        super().__init__(task_id, success=success, **kwargs)

    @property
    def success(self) -> bool:
        return self.data.get('success', True)


def generate_task_id() -> str:
    """Short unique task id"""
    return str(uuid4())[:8]


class IProgressObserver(ABC):
    """Progress observer interface"""

    @abstractmethod
    def on_event(self, event: ProgressEvent) -> None:
        """
        Handle one progress event

        Args:
            event: the progress event
        """


class ProgressSubject:
    """Keeps the observers and publishes events to all of them"""

    def __init__(self):
        self._observers: List[IProgressObserver] = []

    def add_observer(self, observer: IProgressObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def notify_observers(self, event: ProgressEvent) -> None:
        for observer in self._observers:
            try:
                observer.on_event(event)
            except Exception as e:
                # observer errors never reach the copy
                logger.warning(f"Observer {observer.__class__.__name__} failed to handle event: {e}")


class ScpProgressReporter(ProgressSubject):
    """
    Callable passed as ``SCPClient(progress=...)``.

    SCP reports ``(filename, size, sent)`` with cumulative byte counts;
    the first report of a file starts a task, later ones advance it and
    the report reaching `size` finishes it.
    """

    def __init__(self):
        super().__init__()
        self._task_id: Optional[str] = None
        self._filename: Optional[str] = None
        self._sent = 0

    @property
    def active(self) -> bool:
        return self._task_id is not None

    def __call__(self, filename: Union[bytes, str], size: int, sent: int) -> None:
        if isinstance(filename, bytes):
            filename = filename.decode('utf-8', 'replace')

        if self._task_id is None or filename != self._filename:
            if self._task_id is not None:
                self.finish()
            self._task_id = generate_task_id()
            self._filename = filename
            self._sent = 0
            self.notify_observers(TaskStartedEvent(
                self._task_id, description=os.path.basename(filename) or filename, total=size
            ))

        if sent > self._sent:
            self.notify_observers(ProgressAdvancedEvent(self._task_id, advance=sent - self._sent))
            self._sent = sent

        if sent >= size:
            self.finish()

    def finish(self, success: bool = True) -> None:
        """Close the current task, if any"""
        if self._task_id is None:
            return
        self.notify_observers(TaskFinishedEvent(self._task_id, success=success))
        self._task_id = None
        self._filename = None
        self._sent = 0
