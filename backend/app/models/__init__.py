from .competitor import Competitor

__all__ = ["Competitor"]
