"""Remote store access, caches and pagination engines"""
