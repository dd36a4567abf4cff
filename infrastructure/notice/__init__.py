"""通知渠道实现"""
