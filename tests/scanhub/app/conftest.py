"""Fixtures for app-level tests: a real container over local git repositories."""

from pathlib import Path

import pytest
from dependency_injector import providers

from helpers import create_test_repo
from scanhub.app.config import AppConfig, DirectoryConfig, LoggingConfig, ScannerConfig
from scanhub.app.container import Container
from scanhub.app.main import ScanHub
from scanhub.core.domain.models import Finding, Severity


class EvalScanner:
    """Flags every line calling eval() in Python files."""

    name = "eval-check"
    version = "1.0"

    def scan(self, path: Path) -> list[Finding]:
        findings = []
        for source in sorted(path.rglob("*.py")):
            if ".git" in source.parts:
                continue
            for n, line in enumerate(source.read_text(encoding="utf-8").splitlines(), 1):
                if "eval(" in line:
                    findings.append(
                        Finding(
                            rule_id="eval-use",
                            message="Use of eval()",
                            file_path=source.relative_to(path).as_posix(),
                            line=n,
                            severity=Severity.HIGH,
                            scanner_name=self.name,
                        )
                    )
        return findings


@pytest.fixture
def test_config(tmp_path):
    return AppConfig(
        directories=DirectoryConfig(home=tmp_path / "home"),
        scanners=ScannerConfig(enabled=[], parallel=False),
        logging=LoggingConfig(file_output=True, level="DEBUG"),
    )


@pytest.fixture
def container(test_config):
    c = Container()
    c.config.from_pydantic(test_config)
    c.scanners.override(providers.Object([EvalScanner()]))
    c.init_resources()
    yield c
    c.shutdown_resources()
    c.scanners.reset_override()


@pytest.fixture
def hub(container):
    return ScanHub(container=container)


@pytest.fixture
def origin(tmp_path):
    repo, commit = create_test_repo(
        tmp_path / "widgets",
        {
            "README.md": "# Widgets: a tiny demo service\n",
            "app.py": "import os\n\nvalue = eval(os.environ['X'])\nprint(value)\n",
        },
    )
    return repo, commit
