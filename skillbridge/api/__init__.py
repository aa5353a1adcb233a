# skillbridge/api/__init__.py
