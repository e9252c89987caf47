from uarchsim.repeatable import Repeatable


class FakeSource:
    created = 0

    def __init__(self, length):
        FakeSource.created += 1
        self.remaining = list(range(length))

    def eof(self):
        return not self.remaining

    def __call__(self):
        return self.remaining.pop(0)


def test_repeatable_restarts_source():
    uut = Repeatable(FakeSource, 2)
    assert [uut() for _ in range(6)] == [0, 1, 0, 1, 0, 1]


def test_repeatable_never_reports_eof():
    uut = Repeatable(FakeSource, 1)
    uut()
    assert uut.eof() is False
    uut()
    assert uut.eof() is False


def test_repeatable_recreates_via_factory():
    FakeSource.created = 0
    uut = Repeatable(FakeSource, 3)
    for _ in range(7):
        uut()
    assert FakeSource.created == 3


def test_repeatable_announces_restart(capsys):
    uut = Repeatable(FakeSource, 1)
    uut()
    assert "Reached end of trace" not in capsys.readouterr().out
    uut()
    assert "*** Reached end of trace" in capsys.readouterr().out


def test_repeatable_keeps_arguments():
    uut = Repeatable(FakeSource, 4)
    assert uut.args == (4,)