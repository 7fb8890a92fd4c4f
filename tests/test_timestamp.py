import time

from reactornet.timestamp import Timestamp


def test_default_is_epoch():
    assert Timestamp().seconds_since_epoch == 0


def test_now_is_current_time():
    before = int(time.time())
    ts = Timestamp.now()
    after = int(time.time())
    assert before <= ts.seconds_since_epoch <= after


def test_to_string_format():
    text = Timestamp.now().to_string()
    assert len(text) == 19
    assert text[4] == "/"
    assert text[7] == "/"
    assert text[10] == " "
    assert text[13] == ":"
    assert text[16] == ":"
    digits = text[0:4] + text[5:7] + text[8:10] + text[11:13] + text[14:16] + text[17:19]
    assert digits.isdigit() is True


def test_to_string_round_trip():
    ts = Timestamp(1_700_000_000)
    parsed = time.mktime(time.strptime(ts.to_string(), "%Y/%m/%d %H:%M:%S"))
    assert int(parsed) == ts.seconds_since_epoch


def test_str_matches_to_string():
    ts = Timestamp(1_700_000_000)
    assert str(ts) == ts.to_string()


def test_ordering_and_equality():
    assert Timestamp(5) < Timestamp(6)
    assert Timestamp(7) == Timestamp(7)