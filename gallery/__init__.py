"""Arkiv Gallery backend"""
