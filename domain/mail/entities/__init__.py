"""邮件实体"""
