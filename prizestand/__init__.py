"""
Сервис промо-стенда: рулетка, слоты и тёмбола с призами.
"""

__version__ = "1.0.0"
