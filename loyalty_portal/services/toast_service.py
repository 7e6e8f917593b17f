"""
Toast notification channel.

A bounded FIFO of transient messages kept in the user's session. Toasts
expire after a fixed duration; when the queue is full the oldest toast is
dropped so the newest message is always shown.
"""
import time
import uuid
from typing import Callable, Dict, Iterable, List, Any

from flask import current_app, session

from ..models import Toast, ToastType

SESSION_KEY = 'toasts'

DEFAULT_MAX_SIZE = 3
DEFAULT_DURATION_SECONDS = 4.0


class ToastQueue:
    """Bounded, auto-expiring FIFO of toasts."""

    def __init__(
        self,
        toasts: Iterable[Toast] = None,
        max_size: int = DEFAULT_MAX_SIZE,
        duration: float = DEFAULT_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if max_size < 1:
            raise ValueError('max_size must be at least 1')
        self.max_size = max_size
        self.duration = duration
        self.clock = clock
        self._toasts: List[Toast] = list(toasts or [])

    def __len__(self) -> int:
        return len(self.pending())

    def push(self, message: str, toast_type: ToastType = ToastType.INFO) -> Toast:
        self._prune()
        toast = Toast(
            id=uuid.uuid4().hex[:12],
            type=ToastType(toast_type),
            message=message,
            expires_at=self.clock() + self.duration,
        )
        self._toasts.append(toast)
        while len(self._toasts) > self.max_size:
            self._toasts.pop(0)
        return toast

    def success(self, message: str) -> Toast:
        return self.push(message, ToastType.SUCCESS)

    def error(self, message: str) -> Toast:
        return self.push(message, ToastType.ERROR)

    def info(self, message: str) -> Toast:
        return self.push(message, ToastType.INFO)

    def pending(self) -> List[Toast]:
        """Unexpired toasts, oldest first."""
        self._prune()
        return list(self._toasts)

    def dismiss(self, toast_id: str) -> bool:
        before = len(self._toasts)
        self._toasts = [t for t in self._toasts if t.id != toast_id]
        return len(self._toasts) != before

    def clear(self) -> None:
        self._toasts = []

    def _prune(self) -> None:
        now = self.clock()
        self._toasts = [t for t in self._toasts if t.expires_at > now]

    def to_list(self) -> List[Dict[str, Any]]:
        return [t.to_dict() for t in self.pending()]


# ==================== Session binding ====================

def get_toast_queue() -> ToastQueue:
    """Load the current user's queue from the Flask session."""
    stored = session.get(SESSION_KEY) or []
    toasts = []
    for item in stored:
        try:
            toasts.append(Toast.from_dict(item))
        except (KeyError, ValueError, TypeError):
            continue
    return ToastQueue(
        toasts,
        max_size=current_app.config.get('TOAST_QUEUE_SIZE', DEFAULT_MAX_SIZE),
        duration=current_app.config.get('TOAST_DURATION_SECONDS', DEFAULT_DURATION_SECONDS),
    )


def save_toast_queue(queue: ToastQueue) -> None:
    session[SESSION_KEY] = queue.to_list()
    session.modified = True


def notify(message: str, toast_type: ToastType = ToastType.INFO) -> Toast:
    """Push a toast onto the current user's queue."""
    queue = get_toast_queue()
    toast = queue.push(message, toast_type)
    save_toast_queue(queue)
    return toast


def pending_toasts() -> List[Dict[str, Any]]:
    queue = get_toast_queue()
    save_toast_queue(queue)
    return queue.to_list()
