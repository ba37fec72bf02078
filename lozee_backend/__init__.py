from .splitter import SplitResult, split

__all__ = ["SplitResult", "split"]
