"""Sync -- keeping installed blends aligned with their upstream manifests.

This package provides the primitives for:
- Drift detection: content digests of cached vs upstream manifests
- Ownership: deciding which components are safe to remove
"""
