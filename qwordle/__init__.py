"""
QWordle: find either of two hidden words. See :mod:`qwordle.game`.
"""
