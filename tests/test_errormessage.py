import pytest

from openinv.errormessage import NO_ERRORS, NONE, ErrorMessages, ErrorType

MESSAGES = {
    "OVERCURRENT": ErrorType.STOP,
    "HIVOLTAGE": ErrorType.DERATE,
    "TMPHSMAX": ErrorType.WARN,
}


@pytest.fixture
def errors():
    return ErrorMessages(MESSAGES)


def test_nothing_posted_before_time_is_set(errors):
    errors.post("OVERCURRENT")
    assert errors.new_errors() == []
    assert errors.all_errors() == [NO_ERRORS]
    assert errors.last_error == NONE


def test_post_and_print_new(errors):
    errors.set_time(100)
    errors.post("OVERCURRENT")
    assert errors.new_errors() == ["[100]: STOP - OVERCURRENT"]
    assert errors.new_errors() == []
    assert errors.last_error == "OVERCURRENT"


def test_message_posted_only_once_until_unposted(errors):
    errors.set_time(5)
    errors.post("HIVOLTAGE")
    errors.set_time(6)
    errors.post("HIVOLTAGE")
    assert errors.new_errors() == ["[5]: DERATE - HIVOLTAGE"]
    errors.unpost_all()
    errors.post("HIVOLTAGE")
    assert errors.new_errors() == ["[6]: DERATE - HIVOLTAGE"]


def test_all_errors_lists_memory_in_order(errors):
    errors.set_time(10)
    errors.post("OVERCURRENT")
    errors.set_time(20)
    errors.post("TMPHSMAX")
    assert errors.all_errors() == [
        "[10]: STOP - OVERCURRENT",
        "[20]: WARN - TMPHSMAX",
    ]


def test_ring_buffer_overwrites_oldest():
    errors = ErrorMessages(MESSAGES, buffer_size=2)
    errors.set_time(1)
    errors.post("OVERCURRENT")
    errors.set_time(2)
    errors.post("HIVOLTAGE")
    errors.set_time(3)
    errors.post("TMPHSMAX")
    assert errors.all_errors() == [
        "[3]: WARN - TMPHSMAX",
        "[2]: DERATE - HIVOLTAGE",
    ]
    assert errors.last_error == "TMPHSMAX"


def test_unpost_keeps_memory(errors):
    errors.set_time(7)
    errors.post("OVERCURRENT")
    errors.unpost_all()
    assert errors.all_errors() == ["[7]: STOP - OVERCURRENT"]


def test_format_error(errors):
    assert errors.format_error(42, "TMPHSMAX") == "[42]: WARN - TMPHSMAX"


def test_unknown_message_raises(errors):
    errors.set_time(1)
    with pytest.raises(KeyError):
        errors.post("NOSUCHERROR")


def test_reserved_name_rejected():
    with pytest.raises(ValueError):
        ErrorMessages({NONE: ErrorType.STOP})


def test_invalid_buffer_size_rejected():
    with pytest.raises(ValueError):
        ErrorMessages(MESSAGES, buffer_size=0)