"""Local state -- the store of installed blends and their cached manifests."""
