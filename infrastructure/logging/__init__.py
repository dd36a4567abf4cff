"""日志配置"""
