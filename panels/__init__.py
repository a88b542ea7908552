"""
UI-agnostic panel navigation: one generic history stack, used for both the primary
panel and the child panel.
"""
