"""Repositories - SQL-Zugriff pro Quellsystem"""
