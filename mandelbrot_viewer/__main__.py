"""
Allow running the package directly: python -m mandelbrot_viewer
"""
from .app import run

run()
