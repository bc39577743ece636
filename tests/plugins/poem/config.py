# tests/plugins/poem/config.py

CONFIG = {
    "limit": 10,
    "title": "poems",
}
