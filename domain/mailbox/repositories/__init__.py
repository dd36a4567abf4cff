"""邮箱仓储接口"""
