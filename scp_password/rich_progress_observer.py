#!/usr/bin/env python3
"""
Rich Progress Observer Module

Draws SCP progress events as a Rich progress bar on the shared console.
"""

from typing import Dict, Optional

from rich.console import Console
from rich.progress import (
    BarColumn, DownloadColumn, Progress, TaskID, TextColumn,
    TimeRemainingColumn, TransferSpeedColumn
)

from scp_password.progress import (
    IProgressObserver, ProgressAdvancedEvent, ProgressEvent,
    TaskFinishedEvent, TaskStartedEvent
)
from scp_password.utils import build_logger, get_shared_console

logger = build_logger(__name__)


class RichProgressObserver(IProgressObserver):
    """
    Progress observer backed by a Rich progress bar

    Use as a context manager around the copy so the live display is
    always stopped.
    """

    def __init__(self, progress_instance: Optional[Progress] = None,
                 console: Optional[Console] = None):
        """
        Args:
            progress_instance: external Rich Progress; created when None
            console: Rich Console, the shared console when None
        """
        self._console = console or get_shared_console()
        self._external_progress = progress_instance is not None
        self._progress_instance = progress_instance or Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=self._console,
            transient=False,
        )
        self._rich_task_map: Dict[str, TaskID] = {}

    @property
    def progress(self) -> Progress:
        return self._progress_instance

    def start(self) -> None:
        if not self._external_progress:
            self._progress_instance.start()
            logger.debug("Rich progress started")

    def stop(self) -> None:
        if not self._external_progress:
            self._progress_instance.stop()
            logger.debug("Rich progress stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def on_event(self, event: ProgressEvent) -> None:
        if isinstance(event, TaskStartedEvent):
            self._handle_task_started(event)
        elif isinstance(event, ProgressAdvancedEvent):
            self._handle_progress_advanced(event)
        elif isinstance(event, TaskFinishedEvent):
            self._handle_task_finished(event)
        else:
            logger.debug(f"Unhandled event type: {type(event).__name__}")

    def _handle_task_started(self, event: TaskStartedEvent) -> None:
        if event.task_id not in self._rich_task_map:
            self._rich_task_map[event.task_id] = self._progress_instance.add_task(
                description=event.description,
                total=event.total
            )

    def _handle_progress_advanced(self, event: ProgressAdvancedEvent) -> None:
        rich_task_id = self._rich_task_map.get(event.task_id)
        if rich_task_id is None:
            logger.warning(f"Progress advance for unknown task ID: {event.task_id}")
            return
        self._progress_instance.update(rich_task_id, advance=event.advance)

    def _handle_task_finished(self, event: TaskFinishedEvent) -> None:
        rich_task_id = self._rich_task_map.pop(event.task_id, None)
        if rich_task_id is None:
            logger.warning(f"Task finish for unknown task ID: {event.task_id}")
            return
        task = next(t for t in self._progress_instance.tasks if t.id == rich_task_id)
        if event.success:
            self._progress_instance.update(rich_task_id, completed=task.total)
        else:
            self._progress_instance.update(
                rich_task_id, description=task.description + " [red]✗ Error"
            )
