"""
Model Context: граф функциональной модели и его правила.
"""
