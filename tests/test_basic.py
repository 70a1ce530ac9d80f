"""
Basic tests for bottle
"""
import pytest
from bottle_manager.cli import main


def test_import():
    """Test that we can import the main module"""
    assert main is not None


def test_version():
    """Test version is accessible"""
    from bottle_manager import __version__
    assert __version__ == "0.4.0"
