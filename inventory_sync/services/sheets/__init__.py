from .client import CellWrite, SheetsClient, a1_range

__all__ = ["CellWrite", "SheetsClient", "a1_range"]
