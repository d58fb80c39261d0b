from collections.abc import Iterable, Mapping
from project import project
from toolchain_state import host_environment


class selection_error(ValueError):
    """skip/only列表不合法"""


class build_planner:
    project_list: tuple[project, ...]  # 按依赖顺序排列的项目
    skip: tuple[str, ...]  # 要跳过的项目
    only: tuple[str, ...]  # 只构建的项目
    force: bool  # 是否忽略构建条件

    def __init__(self, project_list: Iterable[project], skip: Iterable[str] = (), only: Iterable[str] = (), force: bool = False) -> None:
        self.project_list = tuple(project_list)
        self.skip = tuple(skip)
        self.only = tuple(only)
        self.force = force

    def check(self) -> None:
        """检查skip和only列表

        Raises:
            selection_error: 同时指定skip和only，或者列表中存在未知项目时抛出异常
        """
        if self.skip and self.only:
            raise selection_error("--skip and --only cannot be used together.")
        known = {item.name for item in self.project_list}
        for option, name_list in (("--skip", self.skip), ("--only", self.only)):
            unknown = [name for name in name_list if name not in known]
            if unknown:
                raise selection_error(f"Unknown project in {option}: {', '.join(unknown)}.")

    def selected_projects(self) -> list[project]:
        """按项目列表的顺序获取要处理的项目

        Returns:
            list[project]: 要处理的项目
        """
        self.check()
        if self.only:
            return [item for item in self.project_list if item.name in self.only]
        return [item for item in self.project_list if item.name not in self.skip]

    def should_build(self, item: project, state: Mapping[str, bool], host: host_environment) -> bool:
        """在构建时判断项目是否需要构建

        Args:
            item (project): 项目
            state (Mapping[str, bool]): 本次运行中各项目的构建状态
            host (host_environment): 宿主环境

        Returns:
            bool: 是否需要构建
        """
        return self.force or item.predicate is None or item.predicate(state, host)


assert __name__ != "__main__", "Import this file instead of running it directly."
