"""Shared test fixtures."""

import os
import shutil
import subprocess
import tempfile

import numpy as np
import pytest
from PIL import Image

from CrunchKit.config import ConversionConfig


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def default_config():
    return ConversionConfig()


def save_test_png(path, width=64, height=64, alpha=255, seed=0):
    """Write a random RGBA PNG with constant *alpha* and return its pixels."""
    rng = np.random.default_rng(seed)
    arr = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    arr[:, :, 3] = alpha
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    Image.fromarray(arr).save(path)
    return arr


def _arg_after(cmd, flag):
    return cmd[cmd.index(flag) + 1]


class FakeEncoder:
    """Stand-in for ``subprocess.run`` that writes the requested output file."""

    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls = []
        self.inputs_existed = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        self.inputs_existed.append(os.path.exists(_arg_after(cmd, "-file")))
        if self.returncode == 0:
            with open(_arg_after(cmd, "-out"), "wb") as f:
                f.write(b"Hx\x00\x00fake-crn")
        return subprocess.CompletedProcess(
            cmd, self.returncode, stdout=self.stdout, stderr=self.stderr
        )

    def input_paths(self):
        return [_arg_after(cmd, "-file") for cmd in self.calls]
