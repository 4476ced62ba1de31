"""Konfiguration - Werte aus config/.env (siehe settings.py)"""
