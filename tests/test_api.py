"""
Teal API Tests

Tests for the Context/Script interface, the module-level helpers and the
command line.
"""

import logging

import pytest
from click.testing import CliRunner

import teal
from teal import CompilerOptions, ValueType, EntryStyle, TealError
from teal.errors import UnterminatedStringError, NameError
from teal_api import Context, Script, OutputLog, run, run_with_output
from teal_api.cli import main


class TestContext:
    """Context compile and execute tests."""

    def test_default_options(self):
        ctx = Context()
        assert ctx.options.value_type == ValueType.F64
        assert ctx.options.entry == EntryStyle.SCRIPT

    def test_compile(self):
        script = Context().compile("let x = 10;", filename="x.teal")
        assert isinstance(script, Script)
        assert script.source == "let x = 10;"
        assert script.filename == "x.teal"
        assert script.module.get_global("x") is not None

    def test_script_text(self):
        script = Context().compile("print 1;")
        assert script.text == teal.compile_source("print 1;")

    def test_execute_main(self):
        ctx = Context()
        log = OutputLog()
        assert ctx.execute(ctx.compile("print 4 * 2;"), log) is None
        assert log.lines == ["8"]

    def test_execute_init_returns_python_number(self):
        ctx = Context(CompilerOptions(value_type="i64", entry="init"))
        result = ctx.execute(ctx.compile("fun sq(x) { x * x; } sq(12);"))
        assert result == 144
        assert type(result) is int

    def test_run_with_output(self):
        assert Context().run_with_output("if 2 == 2 { print 1; } else { print 0; }") == ["1"]

    def test_compile_file(self, tmp_path):
        path = tmp_path / "prog.teal"
        path.write_text("print 3;", encoding="utf-8")
        script = Context().compile_file(str(path))
        assert script.filename == str(path)
        assert Context().execute(script) is None

    def test_save_and_load(self, tmp_path):
        ctx = Context(CompilerOptions(entry="init"))
        script = ctx.compile('fun f(a) { a + 1; } print "s"; f(2);')
        path = tmp_path / "prog.wat"
        script.save(str(path))

        loaded = Script.load(str(path))
        assert loaded.module == script.module
        assert ctx.execute(loaded) == 3.0

    def test_loaded_text_runs_the_same(self, tmp_path):
        source = "fun fact(n) { let r = 1; if n > 1 { r = n * fact(n - 1); } r; } print fact(5); print \"ab\";"
        ctx = Context(CompilerOptions(value_type="i64"))
        path = tmp_path / "prog.wat"
        ctx.compile(source).save(str(path))

        log = OutputLog()
        ctx.execute(Script.load(str(path)), log)
        assert log.lines == ctx.run_with_output(source) == ["120", "0"]

    def test_execute_reads_emitted_text(self, monkeypatch):
        script = Context().compile("print 1;")
        monkeypatch.setattr(Script, "text", property(
            lambda self: teal.compile_source("print 2;")))
        assert Context().run_with_output("print 1;") == ["2"]
        log = OutputLog()
        Context().execute(script, log)
        assert log.lines == ["2"]

    def test_lexer_error_propagates(self):
        with pytest.raises(UnterminatedStringError):
            Context().compile('"abc')

    def test_error_carries_filename(self):
        with pytest.raises(NameError) as info:
            Context().compile("let a = 1;\ny + 1;", filename="prog.teal")
        assert info.value.filename == "prog.teal"
        assert str(info.value) == "prog.teal:2: Undefined variable 'y'"

    def test_error_without_filename(self):
        with pytest.raises(NameError) as info:
            Context().compile("y + 1;")
        assert info.value.filename is None
        assert str(info.value) == "line 1: Undefined variable 'y'"

    def test_generation_error_propagates(self):
        with pytest.raises(NameError):
            Context().compile("y + 1;")


class TestModuleHelpers:
    """Package-level helper tests."""

    def test_run(self):
        assert run("2 + 3;", CompilerOptions(entry="init")) == 5.0

    def test_run_with_output(self):
        assert run_with_output("print 1; print 2.5;") == ["1", "2.5"]

    def test_lex_and_parse(self):
        assert teal.lex("1;")[-1].type == teal.TokenType.EOF
        assert len(teal.parse("1; 2;").statements) == 2

    def test_compile_file(self, tmp_path):
        path = tmp_path / "prog.teal"
        path.write_text("let x = 1;", encoding="utf-8")
        assert teal.compile_file(str(path)) == teal.compile_source("let x = 1;")

    def test_errors_share_base(self):
        with pytest.raises(TealError):
            teal.compile_source("fun f(a) { a; } f();")

    def test_compile_logs_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="teal"):
            teal.compile_module("fun f() { 1; }")
        assert any("Added function 'f'" in r.getMessage() for r in caplog.records)


class TestCli:
    """Command line tests."""

    def test_inline_source(self):
        result = CliRunner().invoke(main, ["-e", "let x = 10; x * x + 2;"])
        assert result.exit_code == 0
        assert result.output == teal.compile_source("let x = 10; x * x + 2;")

    def test_value_type_and_entry(self):
        result = CliRunner().invoke(main, ["-e", "1;", "--value-type", "i32", "--entry", "init"])
        assert result.exit_code == 0
        assert "(func $init (result i32)" in result.output
        assert '(export "init" (func $init))' in result.output

    def test_file_input(self, tmp_path):
        path = tmp_path / "prog.teal"
        path.write_text("print 1;", encoding="utf-8")
        result = CliRunner().invoke(main, [str(path)])
        assert result.exit_code == 0
        assert "call $log" in result.output

    def test_output_file(self, tmp_path):
        out = tmp_path / "out.wat"
        result = CliRunner().invoke(main, ["-e", "print 1;", "-o", str(out)])
        assert result.exit_code == 0
        assert out.read_text(encoding="utf-8") == teal.compile_source("print 1;")

    def test_run(self):
        result = CliRunner().invoke(main, ["-e", "if 2 == 2 { print 1; } else { print 0; }", "--run"])
        assert result.exit_code == 0
        assert result.output == "1\n"

    def test_run_expression_entry(self):
        result = CliRunner().invoke(main, ["-e", "print 1; 6 * 7;", "--entry", "init", "--run"])
        assert result.exit_code == 0
        assert result.output == "1\n=> 42.0\n"

    def test_memory_flag(self):
        result = CliRunner().invoke(main, ["-e", "1;", "--memory"])
        assert "(memory $memory 1)" in result.output

    def test_ast(self):
        result = CliRunner().invoke(main, ["-e", "1 + 2;", "--ast"])
        assert result.exit_code == 0
        assert "Binary(ADD)" in result.output

    def test_compile_error_exit_code(self):
        result = CliRunner().invoke(main, ["-e", "y + 1;"])
        assert result.exit_code == 1
        assert "Undefined variable 'y'" in result.output

    def test_compile_error_names_file(self, tmp_path):
        path = tmp_path / "bad.teal"
        path.write_text("print 1;\ny;", encoding="utf-8")
        result = CliRunner().invoke(main, [str(path)])
        assert result.exit_code == 1
        assert f"{path}:2: Undefined variable 'y'" in result.output
        assert result.output.count(str(path)) == 1

    def test_runtime_error_names_source(self):
        result = CliRunner().invoke(main, ["-e", "let z = 0; print 1 / z;", "--value-type", "i32", "--run"])
        assert result.exit_code == 1
        assert "<string>: Integer divide by zero" in result.output

    def test_requires_one_input(self):
        result = CliRunner().invoke(main, [])
        assert result.exit_code != 0

    def test_rejects_unknown_value_type(self):
        result = CliRunner().invoke(main, ["-e", "1;", "--value-type", "u8"])
        assert result.exit_code != 0
