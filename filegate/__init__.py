"""
filegate - 共享密钥保护的文件存储网关
"""

__version__ = "1.0.0"
