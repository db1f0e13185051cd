"""Catalog Core: pure Python, no database access"""
