from taleforge import util
from taleforge.event import Event
from . import make_event

def test_get_nested():
    data = {"environment": {"season": "winter", "weather": None}, "level": 3}
    assert util.get_nested(data, "level") == 3
    assert util.get_nested(data, "environment.season") == "winter"
    assert util.get_nested(data, "environment.weather", "clear") is None
    assert util.get_nested(data, "environment.time", "noon") == "noon"
    assert util.get_nested(data, "level.value") is None

def test_unique():
    assert util.unique(["a", "b", "a", "c", "b"]) == ["a", "b", "c"]
    choices = [{"text": "Go", "n": 1}, {"text": "Stay"}, {"text": "Go", "n": 2}]
    assert util.unique(choices, key=lambda c: c["text"]) == [{"text": "Go", "n": 1}, {"text": "Stay"}]

def test_as_list():
    assert util.as_list(None) == []
    assert util.as_list("parent") == ["parent"]
    assert util.as_list(("a", "b")) == ["a", "b"]

def test_is_number():
    assert util.is_number(3)
    assert util.is_number(-2.5)
    assert not util.is_number(True)
    assert not util.is_number("3")

def test_validation_result():
    assert util.ValidationResult.from_errors([])
    result = util.ValidationResult.from_errors(["bad"])
    assert not result
    assert result.errors == ["bad"]

def test_event_dict():
    event = make_event()
    event.urgency = 0.5
    d = event.to_dict()
    assert d["id"] == event.event_id
    assert d["type"] == "COMBAT"
    assert d["urgency"] == 0.5

    restored = Event.from_dict(d)
    assert restored.event_id == event.event_id
    assert restored.choices == event.choices
    assert restored.tags == event.tags
    assert restored.urgency == 0.5

    assert "urgency" not in make_event().to_dict()
    assert make_event().event_id != make_event().event_id
