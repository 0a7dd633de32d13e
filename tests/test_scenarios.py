import unittest
from typing import Protocol
from unittest.mock import MagicMock

from injectory import Container, Injected, Lifetime, ReadOnlyContainer, ResolutionError, inject


class Clock(Protocol):
    def now(self) -> int: ...


class FixedClock:
    def __init__(self, value: int = 1700000000) -> None:
        self.value = value

    def now(self) -> int:
        return self.value


class Formatter:
    def render(self, title: str, stamp: int) -> str:
        return f"{title}@{stamp}"


class Outbox:
    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, body: str) -> None:
        self.sent.append(body)


class ReportRequest:
    def __init__(self, title: str) -> None:
        self.title = title


class ReportJob:
    """Constructor gets the request and the clock, members get the rest."""

    outbox: Injected[Outbox]

    @inject
    def __init__(self, request: ReportRequest, clock: Clock) -> None:
        self.request = request
        self.clock = clock
        self._formatter = None

    @property
    def formatter(self) -> Formatter:
        return self._formatter

    @formatter.setter
    @inject
    def formatter(self, value: Formatter) -> None:
        self._formatter = value

    def run(self) -> str:
        body = self.formatter.render(self.request.title, self.clock.now())
        self.outbox.send(body)
        return body


class JobRunner:
    """Looks jobs up lazily through the container it was built by."""

    @inject
    def __init__(self, container: ReadOnlyContainer) -> None:
        self._container = container

    def run(self, title: str) -> str:
        return self._container.create_instance(ReportJob, ReportRequest(title)).run()


class TestReportWiring(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()
        self.clock = FixedClock(42)
        self.clock.now = MagicMock(wraps=self.clock.now)
        self.cont.register_instance(Clock, self.clock)
        self.cont.register_implementation(Outbox, Outbox, Lifetime.PER_CONTAINER)
        self.cont.register_implementation(Formatter, Formatter)
        self.cont.register_implementation(JobRunner, JobRunner, Lifetime.PER_CONTAINER)

    def test_runner_builds_jobs_from_its_own_container(self):
        runner = self.cont.get(JobRunner)

        assert runner.run("daily") == "daily@42"
        assert runner.run("weekly") == "weekly@42"

        assert self.clock.now.call_count == 2
        assert self.cont.get(Outbox).sent == ["daily@42", "weekly@42"]

    def test_job_members_are_fresh_or_shared_by_lifetime(self):
        first = self.cont.create_instance(ReportJob, ReportRequest("a"))
        second = self.cont.create_instance(ReportJob, ReportRequest("b"))

        assert first.outbox is second.outbox
        assert first.formatter is not second.formatter
        assert not self.cont.contains(ReportJob)

    def test_job_without_request_reports_the_constructor_gap(self):
        with self.assertRaises(ResolutionError) as ctx:
            self.cont.create_instance(ReportJob)

        assert ctx.exception.stage == ResolutionError.CONSTRUCTOR
        assert ctx.exception.missing == (ReportRequest,)
        assert self.cont.get(Outbox).sent == []

    def test_removing_a_member_dependency_reports_the_member_gap(self):
        self.cont.remove(Formatter)

        with self.assertRaises(ResolutionError) as ctx:
            self.cont.get(JobRunner).run("daily")

        assert ctx.exception.stage == ResolutionError.MEMBER
        assert ctx.exception.missing == (Formatter,)

    def test_clearing_instances_rebuilds_shared_services(self):
        runner = self.cont.get(JobRunner)
        runner.run("daily")

        self.cont.clear_all_instances()

        assert self.cont.get(JobRunner) is not runner
        assert self.cont.get(Outbox).sent == []
        assert self.cont.get(Clock) is not self.clock
        assert self.cont.get(Clock).now() == 1700000000


class TestReportWiringWithAdHocClock(unittest.TestCase):
    def test_ad_hoc_clock_fills_the_unregistered_protocol(self):
        cont = Container()
        cont.register_implementation(Outbox, Outbox, Lifetime.PER_CONTAINER)
        cont.register_implementation(Formatter, Formatter)

        job = cont.create_instance(ReportJob, ReportRequest("adhoc"), FixedClock(7))

        assert job.run() == "adhoc@7"
