__version__ = "1.0.0"
__description__ = "modelrest : REST blueprints generated from data model definitions (FastAPI)"
