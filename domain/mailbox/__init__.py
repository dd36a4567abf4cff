"""
邮箱界限上下文

提供邮箱控制器的配置模型，包括：
- MailboxConfig 邮箱连接配置
- ControllerConfig 控制器配置快照及其选项
- ControllerDefinition 期望状态定义及加载器接口
"""
