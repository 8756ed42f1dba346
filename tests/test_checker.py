from __future__ import annotations

from pathlib import Path

import pytest

from fence_check.actions import MemoryReporter
from fence_check.checker import FenceChecker, parse_minimum, persist_artifact
from fence_check.config import CheckConfig, InspectConfig
from fence_check.exceptions import ConfigError, NetworkError, ParseError, ThresholdError, ToolError


def _disassembler(output: str):
    calls: list[Path] = []

    def _run(path: Path, inspect: InspectConfig) -> str:  # noqa: ARG001
        calls.append(path)
        return output

    _run.calls = calls  # type: ignore[attr-defined]
    return _run


def test_check_passes_and_reports_outputs(check_config: CheckConfig, fake_fetcher) -> None:
    reporter = MemoryReporter()
    checker = FenceChecker(check_config, reporter, fetcher=fake_fetcher, disassembler=_disassembler("5\n"))

    result = checker.run("1.2.3", "3")

    assert result.count == 5
    assert result.minimum == 3
    assert result.passed is True
    assert fake_fetcher.calls == ["https://blobs.example.test/1.2/librust_cosmwasm_enclave.signed.so"]
    assert reporter.outputs["lfence"] == "5"
    assert reporter.outputs["filename"].endswith("librust_cosmwasm_enclave.signed.so")
    assert result.to_dict()["passed"] is True


def test_persisted_file_matches_download(check_config: CheckConfig, fake_fetcher, enclave_bytes: bytes) -> None:
    disassembler = _disassembler("1")
    checker = FenceChecker(check_config, fetcher=fake_fetcher, disassembler=disassembler)

    result = checker.run("10.0.0-rc1", 0)

    path = Path(result.filename)
    assert path.read_bytes() == enclave_bytes
    assert disassembler.calls == [path]


def test_existing_file_is_overwritten(check_config: CheckConfig, fake_fetcher, enclave_bytes: bytes) -> None:
    check_config.artifact.path.write_bytes(b"stale contents that are longer than the new body")
    checker = FenceChecker(check_config, fetcher=fake_fetcher, disassembler=_disassembler("1"))

    checker.run("1.2.3", 1)

    assert check_config.artifact.path.read_bytes() == enclave_bytes


def test_below_minimum_fails_with_both_numbers(check_config: CheckConfig, fake_fetcher) -> None:
    reporter = MemoryReporter()
    checker = FenceChecker(check_config, reporter, fetcher=fake_fetcher, disassembler=_disassembler("2\n"))

    with pytest.raises(ThresholdError) as exc:
        checker.run("1.2.3", "3")

    assert exc.value.count == 2
    assert exc.value.minimum == 3
    assert "2 vs minimum expected: 3" in str(exc.value)
    # the count is still published for the workflow
    assert reporter.outputs["lfence"] == "2"


def test_non_numeric_output_is_parse_error(check_config: CheckConfig, fake_fetcher) -> None:
    reporter = MemoryReporter()
    checker = FenceChecker(check_config, reporter, fetcher=fake_fetcher, disassembler=_disassembler("NaN"))

    with pytest.raises(ParseError):
        checker.run("1.2.3", "3")

    assert "lfence" not in reporter.outputs


def test_download_failure_skips_persist_and_inspect(check_config: CheckConfig) -> None:
    def failing_fetch(url: str, **_: object):
        raise NetworkError(f"Fail to download file for version 1.2.3 from {url}: boom")

    disassembler = _disassembler("5")
    reporter = MemoryReporter()
    checker = FenceChecker(check_config, reporter, fetcher=failing_fetch, disassembler=disassembler)

    with pytest.raises(NetworkError):
        checker.run("1.2.3", "3")

    assert not check_config.artifact.path.exists()
    assert disassembler.calls == []
    assert reporter.outputs == {}


def test_tool_failure_propagates(check_config: CheckConfig, fake_fetcher) -> None:
    def broken(path: Path, inspect: InspectConfig) -> str:
        raise ToolError("Error executing command: exit status 127", error_code="tool_exit_status")

    checker = FenceChecker(check_config, fetcher=fake_fetcher, disassembler=broken)

    with pytest.raises(ToolError):
        checker.run("1.2.3", "3")


def test_invalid_inputs_fail_before_download(check_config: CheckConfig) -> None:
    def unexpected_fetch(url: str, **_: object):
        raise AssertionError("fetch must not run for invalid inputs")

    checker = FenceChecker(check_config, fetcher=unexpected_fetch, disassembler=_disassembler("1"))

    with pytest.raises(ConfigError):
        checker.run("1", "3")
    with pytest.raises(ConfigError):
        checker.run("1.2.3", "many")


@pytest.mark.parametrize(("value", "expected"), [("3", 3), (" 10 ", 10), (0, 0)])
def test_parse_minimum(value: str | int, expected: int) -> None:
    assert parse_minimum(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "-1", "2.5", True])
def test_parse_minimum_rejects(value: object) -> None:
    with pytest.raises(ConfigError) as exc:
        parse_minimum(value)  # type: ignore[arg-type]
    assert exc.value.error_code == "invalid_minimum"


def test_persist_artifact_creates_parent(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "enclave.so"
    assert persist_artifact(b"abc", target) == target
    assert target.read_bytes() == b"abc"


def test_run_check_uses_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, enclave_bytes: bytes) -> None:
    import subprocess

    from fence_check import disasm, net
    from fence_check.checker import run_check

    class _Response:
        content = enclave_bytes

        def raise_for_status(self) -> None:
            return None

    seen: list[str] = []
    monkeypatch.setattr(net.requests, "get", lambda url, **_: seen.append(url) or _Response())
    monkeypatch.setattr(
        disasm.subprocess,
        "run",
        lambda command, **_: subprocess.CompletedProcess(command, 0, stdout="11\n", stderr=""),
    )
    monkeypatch.setenv("FENCE_CHECK_WORKDIR", str(tmp_path))
    monkeypatch.setenv("FENCE_CHECK_BASE_URL", "https://mirror.example.test")

    result = run_check("1.4.0", "10")

    assert result.count == 11
    assert seen == ["https://mirror.example.test/1.4/librust_cosmwasm_enclave.signed.so"]
    assert (tmp_path / "librust_cosmwasm_enclave.signed.so").read_bytes() == enclave_bytes
