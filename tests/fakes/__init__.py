from .withings import WithingsAPIFake

__all__ = ["WithingsAPIFake"]
