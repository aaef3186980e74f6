"""Registry -- discovery of blend manifests across installed taps.

- Ordering: taps listed with pinned taps first
- Lookup: first tap providing ``BlendFormula/<name>`` wins
- Search: substring match over every tap's manifests
"""
