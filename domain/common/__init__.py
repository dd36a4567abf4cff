"""领域公共模块"""
