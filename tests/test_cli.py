"""Test the command-line interface."""

import json
import subprocess
import sys


def run_cli(*args):
    return subprocess.run(
        [sys.executable, "-m", "stencil", *args],
        capture_output=True,
        text=True
    )


def test_cli_text_template():
    result = run_cli("--text", "{{print 1 2}} {{eq 1 1}}")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert result.stdout == "1 2 true"


def test_cli_template_file_with_data(tmp_path):
    template = tmp_path / "page.tmpl"
    template.write_text("Hello {{.name}}, {{len .items}} items", encoding="utf-8")
    data = tmp_path / "page.json"
    data.write_text(json.dumps({"name": "Ada", "items": [1, 2, 3]}), encoding="utf-8")

    result = run_cli(str(template), "--data", str(data))
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert result.stdout == "Hello Ada, 3 items"


def test_cli_set_values():
    result = run_cli("--text", "{{.a}}-{{.b}}", "--set", "a=1", "--set", "b=two")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert result.stdout == "1-two"


def test_cli_missingkey():
    result = run_cli("--text", "{{.nope}}", "--missingkey", "zero")
    assert result.stdout == "<nil>"

    result = run_cli("--text", "{{.nope}}", "--missingkey", "error")
    assert result.returncode == 1
    assert "map has no entry for key" in result.stderr


def test_cli_check():
    result = run_cli("--text", "{{print .x}}", "--check")
    assert result.returncode == 0
    assert result.stdout.strip() == "text: ok"


def test_cli_check_reports_undefined_function():
    result = run_cli("--text", "a\n{{greet .x}}", "--check")
    assert result.returncode == 1
    assert 'template: text:2:3: function "greet" not defined' in result.stderr


def test_cli_skip_func_check():
    result = run_cli("--text", "{{greet .x}}", "--check", "--skip-func-check")
    assert result.returncode == 0

    result = run_cli("--text", "{{greet .x}}", "--skip-func-check")
    assert result.returncode == 1
    assert 'function "greet" not defined' in result.stderr


def test_cli_exec_error():
    result = run_cli("--text", 'ok {{eq 1 "1"}}')
    assert result.returncode == 1
    assert result.stdout == "ok "
    assert "error calling eq: incompatible types for comparison" in result.stderr


def test_cli_tree():
    result = run_cli("--text", "hi {{.x | print}}", "--tree")
    assert result.returncode == 0
    assert "Text: 'hi '" in result.stdout
    assert "Pipeline:" in result.stdout
    assert "Ident: print" in result.stdout


def test_cli_builtins():
    result = run_cli("--builtins")
    assert result.returncode == 0
    names = [line.split()[0] for line in result.stdout.splitlines() if line.strip()]
    assert "eq" in names
    assert "printf" in names
    assert len(names) == 19


def test_cli_no_args():
    result = run_cli()
    assert result.returncode == 1
    assert "usage" in result.stderr.lower()


def test_cli_missing_file(tmp_path):
    result = run_cli(str(tmp_path / "nothing.tmpl"))
    assert result.returncode == 1
    assert "File not found" in result.stderr


def test_builtins_stay_unloaded_in_fresh_process():
    """Only registered names used: the builtin table is never built."""
    script = (
        "import stencil\n"
        "page = stencil.TemplateSet('p').funcs({'greet': str.upper}).parse('{{greet .}}')\n"
        "print(page.render('x'), stencil.builtins_loaded())\n"
        "stencil.TemplateSet('q').parse('{{eq 1 1}}').render()\n"
        "print(stencil.builtins_loaded())\n"
    )
    result = subprocess.run([sys.executable, "-c", script], capture_output=True, text=True)
    assert result.returncode == 0, result.stderr
    assert result.stdout.split() == ["X", "False", "True"]
