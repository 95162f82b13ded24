import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-config-tests",
        action="store_true",
        default=False,
        help="run tests that are intended only for configuration changes",
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run long soak tests",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "config_change: marks tests that should only run when configuration files change",
    )
    config.addinivalue_line(
        "markers",
        "slow: long-running soak tests, skipped unless --run-slow is given",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    skip_config = pytest.mark.skip(
        reason="Run only when configuration is modified (use --run-config-tests)",
    )
    skip_slow = pytest.mark.skip(reason="Long soak test (use --run-slow)")

    for item in items:
        if "config_change" in item.keywords and not config.getoption("--run-config-tests"):
            item.add_marker(skip_config)
        if "slow" in item.keywords and not config.getoption("--run-slow"):
            item.add_marker(skip_slow)
