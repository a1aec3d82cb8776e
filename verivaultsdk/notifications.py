# __   __           _ __   __             _  _
# \ \ / / ___  _ _ (_)\ \ / / __ _  _  _ | || |_
#  \ V / / -_)| '_|| | \ V / / _` || || || ||  _|
#   \_/  \___||_|  |_|  \_/  \__,_| \_,_||_| \__|
#
# VeriVault SDK
# Copyright 2025 VeriVault
#

from typing import Optional, TypeVar, Generic, Callable, List

from . import utils

M = TypeVar('M')


class FanOut(Generic[M]):
    """Delivers messages to registered callbacks.

    A callback that returns ``True`` or raises is unregistered.
    """
    def __init__(self):
        self._callbacks = []         # type: List[Callable[[M], Optional[bool]]]
        self._is_completed = False   # type: bool

    def push(self, message):   # type: (M) -> None
        if self._is_completed:
            return
        to_remove = []
        for i, cb in enumerate(self._callbacks):
            try:
                rs = cb(message)
                if isinstance(rs, bool) and rs is True:
                    to_remove.append(i)
            except Exception as e:
                utils.get_logger().debug('Listener error: %s', e)
                to_remove.append(i)
        self._remove_indexes(to_remove)

    def register_callback(self, callback):  # type: (Callable[[M], Optional[bool]]) -> None
        if self._is_completed:
            return
        self._callbacks.append(callback)

    def remove_all(self):   # type: () -> None
        self._callbacks.clear()

    def _remove_indexes(self, to_remove):
        while to_remove:
            idx = to_remove.pop()
            if 0 <= idx < len(self._callbacks):
                del self._callbacks[idx]

    def shutdown(self):   # type: () -> None
        self._is_completed = True
        self._callbacks.clear()
