import pytest

import grin


@pytest.fixture
def sample(tmp_path):
    path = tmp_path / "sample.txt"
    path.write_bytes(b"she sells sea shells by the sea shore\n" * 30)
    return path


def test_encode_then_decode(sample, tmp_path, capsys):
    encoded = tmp_path / "sample.grin"
    decoded = tmp_path / "sample.out"

    assert grin.main(["encode", str(sample), str(encoded)]) == 0
    assert "Encoded" in capsys.readouterr().out

    assert grin.main(["decode", str(encoded), str(decoded)]) == 0
    assert "Decoded" in capsys.readouterr().out
    assert decoded.read_bytes() == sample.read_bytes()


def test_verbose_flag_is_accepted(sample, tmp_path):
    assert grin.main(["-v", "encode", str(sample), str(tmp_path / "out.grin")]) == 0


@pytest.mark.parametrize("argv", [
    [],
    ["encode"],
    ["encode", "a"],
    ["squash", "a", "b"],
    ["encode", "a", "b", "c"],
])
def test_bad_arguments_print_usage(argv, capsys):
    assert grin.main(argv) == 1
    assert grin.USAGE in capsys.readouterr().out


def test_missing_input_prints_usage(tmp_path, capsys):
    assert grin.main(["encode", str(tmp_path / "nope"), str(tmp_path / "out")]) == 1
    out = capsys.readouterr().out
    assert "not found" in out
    assert grin.USAGE in out


def test_decoding_a_plain_file_fails(sample, tmp_path, capsys):
    output = tmp_path / "out"
    assert grin.main(["decode", str(sample), str(output)]) == 1
    assert "magic" in capsys.readouterr().out
    assert not output.exists()


def test_success_line_reports_size_change(sample, tmp_path, capsys):
    assert grin.main(["encode", str(sample), str(tmp_path / "out.grin")]) == 0
    out = capsys.readouterr().out
    assert "bytes, -" in out
    assert out.rstrip().endswith("%)")


def test_same_input_and_output_is_refused(sample, capsys):
    original = sample.read_bytes()
    assert grin.main(["encode", str(sample), str(sample)]) == 1
    assert "same file" in capsys.readouterr().out
    assert sample.read_bytes() == original


@pytest.mark.parametrize("value, expected", [
    ("debug", "DEBUG"),
    ("Error", "ERROR"),
    ("verbose", "WARNING"),
    ("", "WARNING"),
])
def test_log_level_from_environment(monkeypatch, value, expected):
    monkeypatch.setenv("GRIN_LOG_LEVEL", value)
    assert grin.log_level() == expected
    assert grin.log_level(verbose=True) == "INFO"


def test_unknown_log_level_does_not_abort(sample, tmp_path, monkeypatch):
    monkeypatch.setenv("GRIN_LOG_LEVEL", "verbose")
    assert grin.main(["encode", str(sample), str(tmp_path / "out.grin")]) == 0
