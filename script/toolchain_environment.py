import os
import common
from project import project

target = "arm-none-eabi"
toolchain_name = f"{target}-gcc"
# configure完成后生成的文件，用于判断配置是否过期
configure_artifact = "config.status"


class environment(common.basic_environment):
    target: str  # target平台
    tool_prefix: str  # 工具的前缀，如arm-none-eabi-
    lib_prefix: str  # 安装后target库目录的前缀
    build_root: str  # 所有项目构建目录的根目录
    reconfigure: bool  # 是否忽略config.status的时间戳强制重新配置
    no_install: bool  # 是否跳过所有项目的安装步骤

    def __init__(
        self,
        home: str = os.environ.get("HOME", os.getcwd()),
        jobs: int = 1,
        prefix_dir: str = os.environ.get("HOME", os.getcwd()),
        build_root: str | None = None,
        reconfigure: bool = False,
        no_install: bool = False,
    ) -> None:
        super().__init__(toolchain_name, home, jobs, prefix_dir)
        self.target = target
        self.tool_prefix = f"{self.target}-"
        self.lib_prefix = os.path.join(self.prefix, self.target)
        self.build_root = os.path.abspath(build_root or os.path.join(self.current_dir, "..", "build"))
        self.reconfigure = reconfigure
        self.no_install = no_install

    @property
    def basic_option(self) -> tuple[str, ...]:
        """所有项目共用的配置选项"""
        return (f"--target={self.target}", f"--prefix={self.prefix}")

    def source_dir(self, item: project) -> str:
        return os.path.join(self.home, item.source_subdir)

    def build_dir(self, item: project) -> str:
        return os.path.join(self.build_root, item.name)

    def enter_build_dir(self, item: project) -> str:
        """创建项目的构建目录，已存在的构建目录会被保留以便复用配置结果

        Args:
            item (project): 要构建的项目

        Returns:
            str: 构建目录
        """
        build_dir = self.build_dir(item)
        common.mkdir(build_dir)
        return build_dir

    def need_configure(self, item: project) -> bool:
        """根据config.status和configure脚本的修改时间判断是否需要重新配置

        Args:
            item (project): 要构建的项目

        Raises:
            FileNotFoundError: configure脚本不存在时抛出异常

        Returns:
            bool: 是否需要执行configure
        """
        script = os.path.join(self.source_dir(item), "configure")
        if not os.path.isfile(script):
            raise FileNotFoundError(f'Cannot find configure script of "{item.name}": {script}')
        if self.reconfigure:
            return True
        artifact = os.path.join(self.build_dir(item), configure_artifact)
        if not os.path.exists(artifact):
            return True
        return os.path.getmtime(artifact) <= os.path.getmtime(script)

    def configure(self, item: project, build_dir: str) -> None:
        """对项目进行配置

        Args:
            item (project): 要配置的项目
            build_dir (str): 构建目录
        """
        script = os.path.join(self.source_dir(item), "configure")
        options = " ".join((script, *self.basic_option, *item.configure_args))
        common.run_command(options, build_dir)

    def make(self, build_dir: str, *target: str) -> None:
        """对项目进行编译

        Args:
            build_dir (str): 构建目录
            target (tuple[str, ...]): 要编译的目标
        """
        targets = " ".join(("make", *target))
        common.run_command(f"{targets} -j {self.jobs}", build_dir)

    def install(self, build_dir: str, *target: str) -> None:
        """对项目进行安装

        Args:
            build_dir (str): 构建目录
            target (tuple[str, ...]): 要安装的目标，默认为install
        """
        self.make(build_dir, *(target or ("install",)))

    def run_project(self, item: project) -> None:
        """依次完成项目的配置、编译和安装

        Args:
            item (project): 要构建的项目
        """
        common.check_source_dir(item.name, self.source_dir(item))
        build_dir = self.enter_build_dir(item)
        if self.need_configure(item):
            self.configure(item, build_dir)
        else:
            common.log(f"{item.name} is already configured, skip configure.")
        self.make(build_dir, *item.build_targets)
        if self.no_install:
            common.log(f"Skip installing {item.name}.")
        elif item.install_action:
            item.install_action(self, build_dir)
        else:
            self.install(build_dir, *item.install_targets)


assert __name__ != "__main__", "Import this file instead of running it directly."
