"""Operations management backend for reality-capture services"""

__version__ = "1.0.0"
