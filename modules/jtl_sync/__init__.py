"""JTL Sync - Shops, Mapping, Sync-Runner und Statistik"""
