# skillbridge/schemas/__init__.py
