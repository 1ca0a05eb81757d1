"""
Execution Context: запуск модели, оркестрация действий и восстановление.
"""
