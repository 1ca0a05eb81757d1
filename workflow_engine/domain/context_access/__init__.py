"""
Context Access: дерево иерархических контекстов и правила доступа к ним.
"""
