"""
Permission feature module.

Two-level module/action permissions: the catalog of valid keys, immutable
permission sets, the access evaluator with admin bypass, and the role editor
that keeps functionality grants behind their module.
"""
