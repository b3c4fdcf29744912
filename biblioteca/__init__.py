"""Biblioteca Digital - catalog manager package

This package contains:
- API endpoints and app factory (api.py)
- Storage backends (store.py, database.py)
- Environment profiles (environment.py)
- Data model and validation (book.py, validators.py)
- CLI interface (cli.py)
"""
__version__ = "2.0.0"
