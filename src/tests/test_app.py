"""End-to-end tests for the command-line entry point."""

import numpy as np
import torch
from PIL import Image
from torch import nn

from sketchgen.app import main, parse_args
from sketchgen.inference.engine import TensorShape, TensorSpec, export_torchscript


class Invert(nn.Module):
    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return 255 - x


def write_model(models_dir, filename, dtype, size=16):
    s = TensorSpec(TensorShape.from_dims((1, size, size, 3)), np.dtype(dtype))
    export_torchscript(Invert(), models_dir / filename, [s], [s])


class TestCli:
    """Tests for the sketchgen CLI."""

    def test_defaults(self, tmp_path):
        args = parse_args([str(tmp_path / "in.png"), str(tmp_path / "out.png")])

        assert args.model == "float"
        assert args.device == "cpu"
        assert args.threads == 4

    def test_generate_float(self, tmp_path):
        """Test a full run writes an inverted, model-sized image."""
        models = tmp_path / "models"
        write_model(models, "generator_float.pt", np.float32)
        Image.new("RGB", (40, 30), color=(0, 100, 255)).save(tmp_path / "in.png")

        code = main([
            str(tmp_path / "in.png"), str(tmp_path / "out.png"),
            "--models", str(models), "--threads", "1",
        ])

        assert code == 0
        result = Image.open(tmp_path / "out.png")
        assert result.size == (16, 16)
        assert result.getpixel((8, 8)) == (255, 155, 0)

    def test_generate_quantized(self, tmp_path):
        models = tmp_path / "models"
        write_model(models, "generator_quant.pt", np.uint8, size=8)
        Image.new("L", (20, 50), color=10).save(tmp_path / "in.png")

        code = main([
            str(tmp_path / "in.png"), str(tmp_path / "out.png"),
            "--models", str(models), "-m", "quantized", "-t", "2",
        ])

        assert code == 0
        assert Image.open(tmp_path / "out.png").getpixel((0, 0)) == (245, 245, 245)

    def test_missing_model(self, tmp_path, capsys):
        """Test a missing artifact is reported, not raised."""
        Image.new("RGB", (8, 8)).save(tmp_path / "in.png")

        code = main([
            str(tmp_path / "in.png"), str(tmp_path / "out.png"),
            "--models", str(tmp_path / "nowhere"),
        ])

        assert code == 1
        assert "not found" in capsys.readouterr().err
        assert not (tmp_path / "out.png").exists()

    def test_bad_threads(self, tmp_path, capsys):
        Image.new("RGB", (8, 8)).save(tmp_path / "in.png")

        code = main([str(tmp_path / "in.png"), str(tmp_path / "out.png"), "-t", "0"])

        assert code == 1
        assert "Thread count" in capsys.readouterr().err

    def test_unwritable_output(self, tmp_path, capsys):
        """Test a bad output path is reported with exit status 1."""
        models = tmp_path / "models"
        write_model(models, "generator_float.pt", np.float32, size=8)
        Image.new("RGB", (8, 8)).save(tmp_path / "in.png")

        code = main([
            str(tmp_path / "in.png"), str(tmp_path / "missing_dir" / "out.png"),
            "--models", str(models),
        ])

        assert code == 1
        assert "Cannot write" in capsys.readouterr().err

    def test_unknown_output_extension(self, tmp_path, capsys):
        models = tmp_path / "models"
        write_model(models, "generator_float.pt", np.float32, size=8)
        Image.new("RGB", (8, 8)).save(tmp_path / "in.png")

        code = main([
            str(tmp_path / "in.png"), str(tmp_path / "out.nosuchformat"),
            "--models", str(models),
        ])

        assert code == 1
        assert "Cannot write" in capsys.readouterr().err

    def test_unreadable_input(self, tmp_path):
        (tmp_path / "in.png").write_text("not an image")
        assert main([str(tmp_path / "in.png"), str(tmp_path / "out.png")]) == 1
