import pytest

from fractl import build_parser, main


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.backend is None
    assert args.max_its is None
    assert args.output_filename is None
    assert args.fractal == "Mandelbrot"
    assert args.coloring == "Histogram"


def test_renders_an_image(tmp_path, capsys):
    output = tmp_path / "out.png"
    main(["--x-res", "24", "--y-res", "16", "--max-iterations", "20",
          "--fractal", "Multibrot", "--coloring", "OLC", "--output", str(output)])

    assert output.exists()
    assert "Calculation & render time" in capsys.readouterr().out


def test_configuration_errors_exit(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["--max-iterations", "0", "--output", str(tmp_path / "never.png")])
    assert "max_its" in str(excinfo.value)
    assert not (tmp_path / "never.png").exists()


def test_unknown_backend_is_rejected_by_argparse():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--backend", "vulkan"])
