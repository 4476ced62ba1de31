"""JTL Sync Services"""
