"""
Прикладные сервисы стенда: игра, регистрация, консоль персонала.
"""
