# tests/test_cli.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

import irbridge.cli as cli
from irbridge.errors import InterpreterError
from irbridge.interfaces import ExecuteResponse, ExecuteStatus


@dataclass
class FakeUI:
    """
    UI abstraction used by CLI:
      - read(prompt) -> str
      - write(text) -> None
      - clear() -> None
    """

    inputs: list[str]
    outputs: list[str] = field(default_factory=list)
    clears: int = 0
    prompts: list[str] = field(default_factory=list)

    def read(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise EOFError
        return self.inputs.pop(0)

    def write(self, text: str) -> None:
        self.outputs.append(text)

    def clear(self) -> None:
        self.clears += 1


class FakeInterpreter:
    def __init__(self, responses: dict[str, ExecuteResponse] | None = None):
        self.responses = responses or {}
        self.codes: list[str] = []
        self.opened = False
        self.closed = False

    def get_kernel_name(self) -> str:
        return "ir"

    def open(self) -> None:
        self.opened = True

    def interpret(self, code: str) -> ExecuteResponse:
        self.codes.append(code)
        if code == "crash":
            raise RuntimeError("kernel died")
        return self.responses.get(
            code, ExecuteResponse(ExecuteStatus.SUCCESS, f"[1] {code}\n")
        )

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def data_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data = tmp_path / "data"
    monkeypatch.setenv("IRBRIDGE_DATA_HOME", str(data))
    return data


def test_repl_runs_each_line_and_writes_output():
    ui = FakeUI(inputs=["1 + 1", "", "   ", "x <- 3"])
    interp = FakeInterpreter()

    cli.run_repl(interp, ui=ui)

    assert interp.codes == ["1 + 1", "x <- 3"]
    assert "[1] 1 + 1\n" in ui.outputs
    assert ui.outputs[-1] == "\nBye!\n"


def test_repl_prompt_shows_kernel_name():
    ui = FakeUI(inputs=[])
    cli.run_repl(FakeInterpreter(), ui=ui)
    assert "ir" in ui.prompts[0]
    assert ui.prompts[0].endswith("\033[0m")


def test_repl_exit_command_stops_loop():
    ui = FakeUI(inputs=["q()", "never"])
    interp = FakeInterpreter()

    cli.run_repl(interp, ui=ui)

    assert interp.codes == []
    assert ui.inputs == ["never"]


def test_repl_clear_uses_ui():
    ui = FakeUI(inputs=["cls", "\x0c"])
    cli.run_repl(FakeInterpreter(), ui=ui)
    assert ui.clears == 2


def test_repl_error_response_is_highlighted():
    interp = FakeInterpreter({
        "stop('boom')": ExecuteResponse(ExecuteStatus.ERROR, "Error: boom\n"),
    })
    ui = FakeUI(inputs=["stop('boom')"])

    cli.run_repl(interp, ui=ui)

    err = ui.outputs[0]
    assert "Error: boom" in err
    assert err.startswith("\033[31m")


def test_repl_unhandled_exception_is_crash_logged(data_home: Path):
    ui = FakeUI(inputs=["crash", "1"])
    interp = FakeInterpreter()

    cli.run_repl(interp, ui=ui)

    assert any("RuntimeError: kernel died" in o for o in ui.outputs)
    assert interp.codes == ["crash", "1"]
    crash_log = data_home / "irbridge" / "logs" / "crash.log"
    text = crash_log.read_text(encoding="utf-8")
    assert "code=crash" in text
    assert "kernel=ir" in text


def test_repl_without_ui_uses_input_and_output_fns():
    lines = iter(["a"])
    out: list[str] = []

    def _input(prompt: str) -> str:
        try:
            return next(lines)
        except StopIteration:
            raise EOFError

    cli.run_repl(FakeInterpreter(), input_fn=_input, output_fn=out.append)

    assert out == ["[1] a\n", "\nBye!\n"]


def test_main_exits_when_open_fails(
    data_home: Path, monkeypatch: pytest.MonkeyPatch
):
    class FailingInterpreter(FakeInterpreter):
        def __init__(self, cfg):
            super().__init__()

        def open(self) -> None:
            raise InterpreterError("Fail to init IR Kernel")

    created: list[FailingInterpreter] = []

    def _factory(cfg):
        interp = FailingInterpreter(cfg)
        created.append(interp)
        return interp

    monkeypatch.delenv("IRBRIDGE_CONFIG", raising=False)
    monkeypatch.setattr(cli, "IRInterpreter", _factory)
    monkeypatch.setattr("sys.argv", ["irbridge"])

    with pytest.raises(SystemExit) as exc:
        cli.main()

    assert exc.value.code == 1
    assert created[0].closed
    assert (data_home / "irbridge" / "logs" / "crash.log").exists()


def test_main_runs_legacy_repl(data_home: Path, monkeypatch: pytest.MonkeyPatch):
    interp = FakeInterpreter()
    calls: list[tuple] = []

    monkeypatch.delenv("IRBRIDGE_CONFIG", raising=False)
    monkeypatch.setenv("IRBRIDGE_LEGACY_UI", "1")
    monkeypatch.setattr(cli, "IRInterpreter", lambda cfg: interp)
    monkeypatch.setattr(cli, "run_repl", lambda *args, **kwargs: calls.append((args, kwargs)))
    monkeypatch.setattr("sys.argv", ["irbridge"])

    cli.main()

    assert interp.closed
    assert calls == [((interp,), {})]
