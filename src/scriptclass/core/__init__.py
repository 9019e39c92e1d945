"""
Core model of scriptclass: type descriptors, class definitions and the
shared helpers passes rely on.
"""
