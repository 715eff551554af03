"""Command line tests."""

import zipfile

import pytest

from aiaconvert.cli import EXIT_BAD_INPUT, EXIT_OK, EXIT_SCREEN_FAILED, main


@pytest.mark.integration
def test_convert_writes_zip(tmp_path, capsys, make_aia, button_label_scm, button_label_bky):
    source = tmp_path / "Demo.aia"
    source.write_bytes(make_aia(button_label_scm, button_label_bky))
    output = tmp_path / "out.zip"

    assert main(["convert", str(source), "-o", str(output)]) == EXIT_OK

    with zipfile.ZipFile(output) as archive:
        assert "Demo/app/src/main/java/com/example/demo/MainActivity.kt" in archive.namelist()
    assert "Wrote" in capsys.readouterr().out


@pytest.mark.integration
def test_explicit_project_name(tmp_path, make_aia, button_label_scm):
    source = tmp_path / "input.aia"
    source.write_bytes(make_aia(button_label_scm))
    output = tmp_path / "named.zip"

    assert main(["convert", str(source), "-o", str(output), "-n", "Weather"]) == EXIT_OK
    with zipfile.ZipFile(output) as archive:
        assert "Weather/settings.gradle" in archive.namelist()


@pytest.mark.integration
def test_unusable_stem_falls_back(tmp_path, make_aia, button_label_scm):
    source = tmp_path / "my project.aia"
    source.write_bytes(make_aia(button_label_scm))
    output = tmp_path / "out.zip"

    assert main(["convert", str(source), "-o", str(output)]) == EXIT_OK
    with zipfile.ZipFile(output) as archive:
        assert "ConvertedApp/build.gradle" in archive.namelist()


@pytest.mark.integration
def test_bad_project_name_is_usage_error(tmp_path, make_aia, button_label_scm):
    source = tmp_path / "Demo.aia"
    source.write_bytes(make_aia(button_label_scm))
    with pytest.raises(SystemExit) as exc_info:
        main(["convert", str(source), "-n", "not valid"])
    assert exc_info.value.code == 2


@pytest.mark.integration
def test_missing_input(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        main(["convert", str(tmp_path / "absent.aia")])
    assert exc_info.value.code == 2


@pytest.mark.integration
def test_not_an_archive(tmp_path, capsys):
    source = tmp_path / "Demo.aia"
    source.write_bytes(b"not a zip")
    assert main(["convert", str(source), "-o", str(tmp_path / "out.zip")]) == EXIT_BAD_INPUT
    assert "error:" in capsys.readouterr().err


@pytest.mark.integration
def test_screen_failure(tmp_path, make_aia, button_label_scm):
    source = tmp_path / "Demo.aia"
    source.write_bytes(make_aia(button_label_scm, "<xml><block"))
    output = tmp_path / "out.zip"
    assert main(["convert", str(source), "-o", str(output)]) == EXIT_SCREEN_FAILED
    assert not output.exists()
