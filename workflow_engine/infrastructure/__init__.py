"""
Infrastructure слой: хранение, шина событий, устойчивость и исполнители.
"""
