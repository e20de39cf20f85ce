"""
Table-level repositories for governance state.

Each repository is a set of static coroutines taking an open
``aiosqlite.Connection``; callers choose whether that connection comes from
``ConnectionManager.read()`` or ``ConnectionManager.transaction()``.
"""
