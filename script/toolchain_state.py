import shutil
from types import MappingProxyType


class toolchain_state:
    """记录本次运行中各个项目是否完成构建，只在进程内有效，不会持久化"""

    _built: dict[str, bool]  # {项目名: 是否在本次运行中完成构建}

    def __init__(self) -> None:
        self._built = {}

    def mark_built(self, name: str) -> None:
        """在项目完成configure、make和install后记录"""
        self._built[name] = True

    def mark_skipped(self, name: str) -> None:
        """记录因构建条件不满足而跳过的项目，不会覆盖已构建的记录"""
        self._built.setdefault(name, False)

    def is_built(self, name: str) -> bool:
        return self._built.get(name, False)

    def snapshot(self) -> MappingProxyType[str, bool]:
        """获取当前状态的只读快照

        Returns:
            MappingProxyType[str, bool]: {项目名: 是否在本次运行中完成构建}
        """
        return MappingProxyType(dict(self._built))


class host_environment:
    """宿主环境探测"""

    def find_program(self, name: str) -> str | None:
        """在PATH中查找程序

        Args:
            name (str): 程序名

        Returns:
            str | None: 程序的完整路径，找不到时返回None
        """
        return shutil.which(name)


assert __name__ != "__main__", "Import this file instead of running it directly."
