from turno_queue.registry import Subscriber, SubscriberRegistry


def _sub(sid):
    return Subscriber(id=sid, send=lambda m: None)


def test_register_and_unregister():
    r = SubscriberRegistry()
    r.register(_sub("a"))
    r.register(_sub("b"))
    assert len(r) == 2
    assert "a" in r

    assert r.unregister("a") is True
    assert r.unregister("a") is False
    assert [s.id for s in r.members()] == ["b"]


def test_reregister_replaces_previous_connection():
    r = SubscriberRegistry()
    first, second = _sub("a"), _sub("a")
    r.register(first)
    r.register(second)
    assert len(r) == 1
    assert r.members()[0] is second


def test_members_is_a_copy():
    r = SubscriberRegistry()
    r.register(_sub("a"))
    members = r.members()
    r.unregister("a")
    assert [s.id for s in members] == ["a"]
    assert r.members() == []
