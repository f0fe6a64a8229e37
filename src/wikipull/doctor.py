"""Environment diagnostics for wikipull (``wikipull --doctor``)."""

import sys
from importlib import import_module
from pathlib import Path
from typing import NamedTuple, Optional

try:
    from rich.console import Console
    from rich.table import Table

    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False
    Console = None  # type: ignore
    Table = None  # type: ignore


OK = "ok"
WARN = "warn"
FAIL = "fail"

# (import name, distribution name)
CORE_MODULES = [
    ("playwright.async_api", "playwright"),
    ("pydantic", "pydantic"),
    ("bs4", "beautifulsoup4"),
    ("html2text", "html2text"),
    ("rich", "rich"),
]
OPTIONAL_MODULES = [
    ("yaml", "pyyaml"),
]

_STYLES = {OK: "green", WARN: "yellow", FAIL: "red"}


class CheckResult(NamedTuple):
    """Outcome of one diagnostic check."""

    group: str
    name: str
    status: str
    detail: str = ""

    @property
    def passed(self) -> bool:
        return self.status == OK


def check_module(module_name: str, package_name: str, optional: bool = False) -> CheckResult:
    """Try importing a module and report whether its distribution is installed."""
    group = "Optional" if optional else "Core"
    try:
        import_module(module_name)
    except ImportError as e:
        hint = f"pip install {package_name}"
        return CheckResult(group, package_name, WARN if optional else FAIL, f"{e.__class__.__name__}; {hint}")
    return CheckResult(group, package_name, OK)


def check_chromium() -> CheckResult:
    """Check that Playwright's Chromium build has been downloaded."""
    try:
        from playwright.sync_api import sync_playwright
    except ImportError:
        return CheckResult("Browser", "chromium", FAIL, "playwright is not installed")

    try:
        with sync_playwright() as p:
            executable = Path(p.chromium.executable_path)
    except Exception as e:
        return CheckResult("Browser", "chromium", WARN, str(e))

    if executable.exists():
        return CheckResult("Browser", "chromium", OK, str(executable))
    return CheckResult("Browser", "chromium", FAIL, "run: playwright install chromium")


def check_output_dir(output_dir: Optional[Path] = None) -> CheckResult:
    """
    Check that archives can be written to the output directory.

    The directory is created if needed; the probe file is removed again.
    """
    directory = Path(output_dir) if output_dir else Path("./wikis")
    probe = directory / ".wikipull_probe"

    try:
        directory.mkdir(parents=True, exist_ok=True)
        probe.write_bytes(b"")
        probe.unlink()
    except PermissionError:
        return CheckResult("Output", str(directory), FAIL, "permission denied")
    except OSError as e:
        return CheckResult("Output", str(directory), FAIL, str(e))
    return CheckResult("Output", str(directory), OK, "writable")


def check_config_file(path: Path) -> CheckResult:
    """Validate a YAML config file without starting a batch."""
    from .models.config import WikipullConfig

    try:
        WikipullConfig.from_yaml_file(path)
    except ImportError:
        return CheckResult("Config", str(path), WARN, "pyyaml is required to read config files")
    except Exception as e:
        return CheckResult("Config", str(path), FAIL, str(e).splitlines()[0])
    return CheckResult("Config", str(path), OK, "valid")


def collect_checks(output_dir: Optional[Path] = None, config_file: Optional[Path] = None) -> list[CheckResult]:
    results = [check_module(mod, pkg) for mod, pkg in CORE_MODULES]
    results.extend(check_module(mod, pkg, optional=True) for mod, pkg in OPTIONAL_MODULES)
    results.append(check_chromium())
    results.append(check_output_dir(output_dir))
    if config_file is not None:
        results.append(check_config_file(config_file))
    return results


def _render(results: list[CheckResult], use_rich: bool) -> None:
    if use_rich:
        table = Table(title="wikipull diagnostics")
        table.add_column("Group", style="bold")
        table.add_column("Check")
        table.add_column("Status")
        table.add_column("Detail", style="dim")
        for result in results:
            style = _STYLES[result.status]
            table.add_row(result.group, result.name, f"[{style}]{result.status.upper()}[/{style}]", result.detail)
        Console().print(table)
        return

    for result in results:
        line = f"[{result.status.upper()}] {result.group}: {result.name}"
        print(f"{line} - {result.detail}" if result.detail else line)


def run_doctor(
    output_dir: Optional[Path] = None,
    config_file: Optional[Path] = None,
    use_rich: bool = True,
) -> int:
    """
    Run every diagnostic check and print the results.

    Args:
        output_dir: Directory archives would be written to
        config_file: Optional YAML config to validate
        use_rich: Render a rich table when rich is importable

    Returns:
        0 when a batch could run, 1 when a core module, the browser or a
        given config file is broken
    """
    results = collect_checks(output_dir, config_file)
    _render(results, use_rich and RICH_AVAILABLE)

    blocking = [r for r in results if r.status == FAIL]
    if any(r.group == "Core" for r in blocking):
        print("\nCore dependencies are missing. Reinstall with:")
        print("  pipx reinstall wikipull --force")
        print("  pip install --upgrade --force-reinstall wikipull")
        return 1
    if blocking:
        print(f"\n{len(blocking)} check(s) failed.")
        return 1

    if any(r.status == WARN for r in results if r.group == "Optional"):
        print("\nYAML config support: pip install wikipull[yaml]")
    print("\nReady to convert wikis.")
    return 0


if __name__ == "__main__":
    sys.exit(run_doctor())
