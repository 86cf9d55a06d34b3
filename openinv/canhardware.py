"""Hardware-independent part of a CAN interface: callbacks and user message filters."""

from abc import ABC, abstractmethod

MAX_USER_MESSAGES = 10
MAX_RECV_CALLBACKS = 5
CAN_FORCE_EXTENDED = 0x20000000
MAX_COB_ID = 0x1FFFFFFF


class CanCallback:
    """Receiver of user-handled CAN messages."""

    def handle_rx(self, can_id, data, dlc):
        """Called for every received user message."""

    def handle_clear(self):
        """Called after the user message list was cleared; re-register ids here."""


class CanHardware(ABC):
    """Base class of CAN interfaces; subclasses send frames and set up filters."""

    def __init__(self):
        self._callbacks = []
        self._user_messages = []

    @property
    def user_messages(self):
        """Registered (can_id, mask) pairs in registration order."""
        return tuple(self._user_messages)

    @property
    def callbacks(self):
        return tuple(self._callbacks)

    def add_callback(self, callback):
        """Add a receiver; False when the maximum number is reached."""
        if len(self._callbacks) >= MAX_RECV_CALLBACKS:
            return False
        self._callbacks.append(callback)
        return True

    def register_user_message(self, can_id, mask=0):
        """Register an id to be delivered to the callbacks.

        Adding CAN_FORCE_EXTENDED to a standard id forces an extended filter.
        Returns False when the id is already registered or the list is full.
        """
        if len(self._user_messages) >= MAX_USER_MESSAGES:
            return False
        if any(existing == can_id for existing, _ in self._user_messages):
            return False
        self._user_messages.append((can_id, mask))
        self.configure_filters()
        return True

    def clear_user_messages(self):
        """Remove all user ids and let every callback register its ids again."""
        self._user_messages.clear()
        self.configure_filters()
        for callback in list(self._callbacks):
            callback.handle_clear()

    def handle_rx(self, can_id, data, dlc):
        """Deliver a received frame to every callback."""
        for callback in self._callbacks:
            callback.handle_rx(can_id, data, dlc)

    @abstractmethod
    def send(self, can_id, data, length=8):
        """Transmit a frame."""

    @abstractmethod
    def configure_filters(self):
        """Apply the registered user messages to the receive filters."""