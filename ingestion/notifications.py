"""
Change signals for downstream caches.

The pipeline does not own any cache; it only announces which resource
types changed after a run so that whoever serves them can invalidate.
"""

from typing import Callable, List
import logging

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]


class ChangeNotifier:
    """Fan a 'resource changed' signal out to subscribed callbacks"""

    def __init__(self):
        self._callbacks: List[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback):
        self._callbacks.append(callback)

    def resource_changed(self, resource: str):
        logger.info(f"Resource changed: {resource}")
        for callback in list(self._callbacks):
            try:
                callback(resource)
            except Exception:
                # Subscriber errors are logged only
                logger.exception(f"Change callback {callback!r} failed for {resource}")


default_notifier = ChangeNotifier()
