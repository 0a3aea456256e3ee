"""项目内使用的自定义异常定义。"""


class ImageRepackError(Exception):
    """基础异常类型。"""


class ValidationError(ImageRepackError):
    """配置或输入不合法时抛出，在任何图片开始处理之前终止任务。"""


class SetupError(ImageRepackError):
    """工作目录、压缩包等准备工作失败时抛出。"""
