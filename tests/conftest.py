"""
Pytest 配置文件

设置测试环境
"""

import sys
from pathlib import Path


def pytest_configure(config):
    """
    Pytest 配置钩子

    在测试收集之前设置 Python 路径
    """
    # 项目根目录放在最前面，确保 config 包从项目根目录加载
    project_root = str(Path(__file__).parent.parent.resolve())

    if project_root not in sys.path:
        sys.path.insert(0, project_root)
