"""
Download, compile and install LLVM toolchains, and export their locations for llvm-sys.
"""

__all__ = ["cache", "cli", "cmake", "config", "download", "errors", "formatting", "installer", "progress", "releases", "shell"]
__version__ = "0.1.0"
