"""brew-blend -- install and remove Homebrew "blends" (meta-formulae)."""

__version__ = "0.4.0"
