import pytest

from openinv.canhardware import (
    MAX_RECV_CALLBACKS,
    MAX_USER_MESSAGES,
    CanCallback,
    CanHardware,
)


class FakeCan(CanHardware):
    def __init__(self):
        super().__init__()
        self.sent = []
        self.filter_updates = 0

    def send(self, can_id, data, length=8):
        self.sent.append((can_id, bytes(data), length))

    def configure_filters(self):
        self.filter_updates += 1


class Recorder(CanCallback):
    def __init__(self, name, log):
        self.name = name
        self.log = log
        self.clears = 0

    def handle_rx(self, can_id, data, dlc):
        self.log.append((self.name, can_id, data, dlc))

    def handle_clear(self):
        self.clears += 1


class Reregistering(CanCallback):
    def __init__(self, hw, can_id):
        self.hw = hw
        self.can_id = can_id

    def handle_clear(self):
        CanHardware.register_user_message(self.hw, self.can_id)


class Echo(CanCallback):
    def __init__(self, hw):
        self.hw = hw

    def handle_rx(self, can_id, data, dlc):
        self.hw.send(can_id + 0x80, data, dlc)


def test_base_class_is_abstract():
    with pytest.raises(TypeError):
        CanHardware()


def test_callback_limit():
    hw = FakeCan()
    log = []
    results = [
        CanHardware.add_callback(hw, Recorder(str(i), log))
        for i in range(MAX_RECV_CALLBACKS)
    ]
    assert all(results)
    assert CanHardware.add_callback(hw, Recorder("extra", log)) is False
    assert len(hw.callbacks) == MAX_RECV_CALLBACKS


def test_register_user_message_configures_filters():
    hw = FakeCan()
    assert CanHardware.register_user_message(hw, 0x601) is True
    assert hw.user_messages == ((0x601, 0),)
    assert hw.filter_updates == 1


def test_duplicate_user_message_rejected():
    hw = FakeCan()
    CanHardware.register_user_message(hw, 0x123, 0x7FF)
    assert CanHardware.register_user_message(hw, 0x123) is False
    assert hw.user_messages == ((0x123, 0x7FF),)
    assert hw.filter_updates == 1


def test_user_message_limit():
    hw = FakeCan()
    assert all(
        CanHardware.register_user_message(hw, 0x100 + i)
        for i in range(MAX_USER_MESSAGES)
    )
    assert CanHardware.register_user_message(hw, 0x500) is False
    assert len(hw.user_messages) == MAX_USER_MESSAGES
    assert hw.filter_updates == MAX_USER_MESSAGES


def test_clear_user_messages_notifies_callbacks():
    hw = FakeCan()
    log = []
    first, second = Recorder("a", log), Recorder("b", log)
    CanHardware.add_callback(hw, first)
    CanHardware.add_callback(hw, second)
    CanHardware.register_user_message(hw, 0x7DF)
    CanHardware.clear_user_messages(hw)
    assert hw.user_messages == ()
    assert (first.clears, second.clears) == (1, 1)
    assert hw.filter_updates == 2


def test_callbacks_register_again_after_clear():
    hw = FakeCan()
    CanHardware.add_callback(hw, Reregistering(hw, 0x601))
    CanHardware.register_user_message(hw, 0x300)
    CanHardware.clear_user_messages(hw)
    assert hw.user_messages == ((0x601, 0),)


def test_handle_rx_dispatches_in_order():
    hw = FakeCan()
    log = []
    CanHardware.add_callback(hw, Recorder("a", log))
    CanHardware.add_callback(hw, Recorder("b", log))
    payload = bytes(range(8))
    CanHardware.handle_rx(hw, 0x123, payload, 8)
    assert log == [("a", 0x123, payload, 8), ("b", 0x123, payload, 8)]


def test_base_callback_methods_are_no_ops():
    hw = FakeCan()
    CanHardware.add_callback(hw, CanCallback())
    CanHardware.register_user_message(hw, 0x10)
    CanHardware.handle_rx(hw, 0x10, bytes(8), 8)
    CanHardware.clear_user_messages(hw)
    assert hw.user_messages == ()


def test_send_reaches_subclass():
    hw = FakeCan()
    CanHardware.add_callback(hw, Echo(hw))
    payload = b"\x60\x00\x20\x00\x00\x00\x00\x00"
    CanHardware.handle_rx(hw, 0x500, payload, 8)
    assert hw.sent == [(0x580, payload, 8)]