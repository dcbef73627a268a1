"""异常定义"""


class StarClassifierError(Exception):
    """所有可预期错误的基类，消息可直接展示给用户"""


class ValidationError(StarClassifierError):
    """用户输入缺失或非法，在任何 I/O 之前拒绝"""


class RemoteSourceError(StarClassifierError):
    """从 GitHub 获取数据失败"""


class UserNotFoundError(RemoteSourceError):
    """GitHub 用户不存在"""

    def __init__(self, username: str):
        super().__init__(f"GitHub 用户名不存在: {username}")
        self.username = username


class RateLimitError(RemoteSourceError):
    """GitHub API 限额耗尽"""


class PersistenceError(StarClassifierError):
    """本地存储读写失败"""


class SnapshotImportError(StarClassifierError):
    """导入的数据快照格式错误"""
