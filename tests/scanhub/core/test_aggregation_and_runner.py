import threading
import time

from fakes import FailingScanner, FakeLogger, FakeScanner
from scanhub.core.domain.models import Finding, Severity
from scanhub.core.services import FindingAggregator, ScannerRunner


def _finding(severity, rule="r"):
    return Finding(rule_id=rule, message="m", file_path="f.py", line=1, severity=severity, scanner_name="s")


def test_scanner_report_groups_by_severity():
    findings = [_finding(Severity.HIGH), _finding(Severity.LOW), _finding(Severity.HIGH)]

    report = FindingAggregator().scanner_report(name="s", version="1", findings=findings)

    assert report.total_findings == 3
    assert len(report.by_severity[Severity.HIGH]) == 2
    assert report.by_severity[Severity.MEDIUM] == ()
    assert report.breakdown.high == 2
    assert report.breakdown.low == 1
    assert report.breakdown.total == 3


def test_overall_breakdown_sums_every_scanner():
    aggregator = FindingAggregator()
    a = aggregator.scanner_report(name="a", version="1", findings=[_finding(Severity.MEDIUM)])
    b = aggregator.scanner_report(name="b", version="1", findings=[_finding(Severity.MEDIUM), _finding(Severity.INFO)])

    overall = aggregator.overall([a, b])

    assert (overall.high, overall.medium, overall.low, overall.info) == (0, 2, 0, 1)


class SlowScanner(FakeScanner):
    def __init__(self, name, delay, started):
        super().__init__(name)
        self.delay = delay
        self.started = started

    def scan(self, path):
        self.started.append(threading.current_thread().name)
        time.sleep(self.delay)
        return super().scan(path)


def test_parallel_run_keeps_registration_order(tmp_path):
    (tmp_path / "x.py").write_text("x")
    started = []
    runner = ScannerRunner(
        scanners=[SlowScanner("slow", 0.1, started), SlowScanner("fast", 0.0, started)],
        aggregator=FindingAggregator(),
        logger=FakeLogger(),
        parallel=True,
    )

    reports = runner.run(tmp_path)

    assert [r.name for r in reports] == ["slow", "fast"]
    assert all(name.startswith("scanhub-scanner") for name in started)


def test_sequential_run_isolates_failures(tmp_path):
    (tmp_path / "x.py").write_text("x")
    logger = FakeLogger()
    runner = ScannerRunner(
        scanners=[FakeScanner("ok"), FailingScanner(error=ValueError("bad output"))],
        aggregator=FindingAggregator(),
        logger=logger,
        parallel=False,
    )

    ok, broken = runner.run(tmp_path)

    assert ok.total_findings == 1
    assert broken.error == "bad output"
    assert broken.total_findings == 0
    assert logger.messages("warning") == ["scanner_failed"]


def test_no_scanners_yields_no_reports(tmp_path):
    runner = ScannerRunner(scanners=[], aggregator=FindingAggregator(), logger=FakeLogger())

    assert runner.run(tmp_path) == []
