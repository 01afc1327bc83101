from .fakes import FakePlatform, FakeSheetStore

__all__ = ["FakePlatform", "FakeSheetStore"]
