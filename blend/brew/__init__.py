"""Package manager integration."""
