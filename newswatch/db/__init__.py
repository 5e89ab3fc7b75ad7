from .session import Base, make_engine, make_sessionmaker
from . import models  # noqa: F401

__all__ = ["Base", "make_engine", "make_sessionmaker", "models"]
