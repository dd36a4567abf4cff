"""通知领域模块"""
