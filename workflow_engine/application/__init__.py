"""
Application слой: use cases, DTO и координатор выполнения.
"""
