import dataclasses
import typing
from collections.abc import Mapping

if typing.TYPE_CHECKING:
    from toolchain_environment import environment
    from toolchain_state import host_environment


class build_predicate:
    """项目构建条件，根据本次运行中已构建的项目和宿主环境判断项目是否需要构建"""

    def __call__(self, state: Mapping[str, bool], host: "host_environment") -> bool:
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError


@dataclasses.dataclass(frozen=True)
class when_built(build_predicate):
    """指定项目在本次运行中已构建时才构建"""

    name: str  # 依赖的项目名

    def __call__(self, state: Mapping[str, bool], host: "host_environment") -> bool:
        return state.get(self.name, False)

    def describe(self) -> str:
        return f"{self.name} was built in this run"


@dataclasses.dataclass(frozen=True)
class when_not_built(build_predicate):
    """指定项目在本次运行中未构建时才构建"""

    name: str  # 依赖的项目名

    def __call__(self, state: Mapping[str, bool], host: "host_environment") -> bool:
        return not state.get(self.name, False)

    def describe(self) -> str:
        return f"{self.name} was not built in this run"


@dataclasses.dataclass(frozen=True)
class when_program_missing(build_predicate):
    """宿主环境的PATH中找不到指定程序时才构建"""

    program: str  # 要查找的程序

    def __call__(self, state: Mapping[str, bool], host: "host_environment") -> bool:
        return host.find_program(self.program) is None

    def describe(self) -> str:
        return f"{self.program} is not found in PATH"


class custom_install:
    """自定义安装步骤，替代默认的make install"""

    def __call__(self, env: "environment", build_dir: str) -> None:
        raise NotImplementedError


@dataclasses.dataclass(frozen=True)
class project:
    """一个独立的configure/make/make install单元，source_subdir为空时使用name"""

    name: str  # 项目名，用于选择项目和命名构建目录
    source_subdir: str = ""  # 源代码目录相对于源码树根目录的路径
    configure_args: tuple[str, ...] = ()  # 项目特有的配置选项
    predicate: build_predicate | None = None  # 构建条件，None表示总是构建
    install_action: custom_install | None = None  # 自定义安装步骤，None表示使用make install
    build_targets: tuple[str, ...] = ()  # 编译目标，为空时使用默认目标
    install_targets: tuple[str, ...] = ("install",)  # 安装目标

    def __post_init__(self) -> None:
        assert self.name, "Project name must not be empty."
        if not self.source_subdir:
            object.__setattr__(self, "source_subdir", self.name)
        for field in ("configure_args", "build_targets", "install_targets"):
            object.__setattr__(self, field, tuple(getattr(self, field)))


assert __name__ != "__main__", "Import this file instead of running it directly."
