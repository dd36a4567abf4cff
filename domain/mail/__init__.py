"""邮件领域模块

该模块包含邮件收取和处理的领域模型，包括：
- Email 实体及 Address、MessageSummary 等值对象
- MailboxClient / MailboxSession 远程邮箱接口
- 邮件处理器链
"""
