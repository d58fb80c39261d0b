import enum
import functools
import os
import psutil
import shutil
import json
import argparse
import inspect
import itertools
import subprocess
import sys
from collections.abc import Callable


class command_dry_run:
    """是否只显示命令而不实际执行"""

    _dry_run: bool = False

    @classmethod
    def get(cls) -> bool:
        return cls._dry_run

    @classmethod
    def set(cls, dry_run: bool) -> None:
        cls._dry_run = dry_run


class message_level(enum.IntEnum):
    """信息输出等级，数值越大输出越少"""

    normal = 0  # 显示所有信息和外部命令输出
    quiet = 1  # 隐藏外部命令输出，保留提示信息
    silent = 2  # 隐藏所有信息


class command_verbosity:
    """当前的信息输出等级"""

    _level: message_level = message_level.normal

    @classmethod
    def get(cls) -> message_level:
        return cls._level

    @classmethod
    def set(cls, level: message_level) -> None:
        cls._level = level


def log(message: str) -> None:
    """在非静默模式下输出带有[arm-toolchain]标签的提示信息

    Args:
        message (str): 提示信息
    """
    if command_verbosity.get() < message_level.silent:
        print(f"[arm-toolchain] {message}", flush=True)


def log_error(message: str) -> None:
    """在非静默模式下向stderr输出错误信息

    Args:
        message (str): 错误信息
    """
    if command_verbosity.get() < message_level.silent:
        print(f"[arm-toolchain] {message}", file=sys.stderr, flush=True)


def _support_dry_run[**P, R](echo_fn: Callable[..., str | None] | None = None) -> Callable[[Callable[P, R]], Callable[P, R | None]]:
    """根据dry_run参数和command_dry_run中的全局状态确定是否只回显命令而不执行，若fn没有dry_run参数则只会使用全局状态

    Args:
        echo_fn (Callable[..., str | None] | None, optional): 回调函数，返回要显示的信息或None，无回调或返回None时不显示信息，所有参数需要能在主函数的参数列表中找到，默认为无回调.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R | None]:
        signature = inspect.signature(fn)

        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
            bound_args = signature.bind(*args, **kwargs)
            bound_args.apply_defaults()
            if echo_fn:
                param_list: list = []
                for key in inspect.signature(echo_fn).parameters.keys():
                    assert (
                        key in bound_args.arguments
                    ), f"The param {key} of echo_fn is not in the param list of fn. Every param of echo_fn should be able to find in the param list of fn."
                    param_list.append(bound_args.arguments[key])
                echo = echo_fn(*param_list)
                if echo is not None:
                    log(echo)
            dry_run: bool | None = bound_args.arguments.get("dry_run")
            assert isinstance(dry_run, bool | None), f"The param dry_run must be a bool or None."
            if dry_run is None and command_dry_run.get() or dry_run:
                return None
            return fn(*bound_args.args, **bound_args.kwargs)

        return wrapper

    return decorator


@_support_dry_run(lambda command: f"Run command: {command}")
def run_command(
    command: str,
    cwd: str | None = None,
    capture: bool = False,
    dry_run: bool | None = None,
) -> subprocess.CompletedProcess[str] | None:
    """在指定目录下运行命令，命令执行出错时抛出RuntimeError

    Args:
        command (str): 要运行的命令
        cwd (str | None, optional): 运行命令时的工作目录，默认为当前目录.
        capture (bool, optional): 是否捕获命令输出，默认为不捕获.
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.

    Raises:
        RuntimeError: 命令执行失败时抛出异常

    Returns:
        None | subprocess.CompletedProcess[str]: 在命令正常执行结束后返回执行结果，dry run时返回None
    """

    if capture:
        pipe = subprocess.PIPE  # capture为True，不论输出等级如何都需要捕获输出
    elif command_verbosity.get() == message_level.normal:
        pipe = None  # 正常输出
    else:
        pipe = subprocess.DEVNULL  # quiet及以上等级丢弃外部命令输出
    try:
        return subprocess.run(command, stdout=pipe, stderr=pipe, shell=True, check=True, text=True, cwd=cwd)
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f'Command "{command}" failed with errno={e.returncode}.') from e


@_support_dry_run(lambda path: f"Create directory {path}.")
def mkdir(path: str, dry_run: bool | None = None) -> None:
    """创建目录，已存在的目录会被保留

    Args:
        path (str): 要创建的目录
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.
    """
    os.makedirs(path, exist_ok=True)


@_support_dry_run(lambda src, dst: f"Copy {src} -> {dst}.")
def copy(src: str, dst: str, dry_run: bool | None = None) -> None:
    """复制文件并覆盖已存在的目标文件，目标目录不存在时自动创建

    Args:
        src (str): 源文件
        dst (str): 目标文件
        dry_run (bool | None, optional): 是否只回显命令而不执行，默认为None.
    """
    # 创建目标目录
    dir = os.path.dirname(dst)
    if dir != "":
        mkdir(dir)
    shutil.copyfile(src, dst)


def check_source_dir(project: str, source_dir: str) -> None:
    """检查源代码目录是否存在

    Args:
        project (str): 项目名称，用于提供错误报告信息
        source_dir (str): 源代码目录

    Raises:
        FileNotFoundError: 源代码目录不存在时抛出异常
    """
    if not os.path.isdir(source_dir):
        raise FileNotFoundError(f'Cannot find source tree of "{project}" in directory "{source_dir}".')


class basic_environment:
    """构建环境的公共部分"""

    home: str  # 源代码所在的目录
    jobs: int  # 编译所用线程数
    current_dir: str  # 构建脚本所在目录
    name: str  # 工具链名
    prefix: str  # 工具链安装位置
    bin_dir: str  # 安装后可执行文件所在目录

    def __init__(self, name: str, home: str, jobs: int, prefix_dir: str) -> None:
        self.name = name
        self.home = os.path.abspath(home)
        self.jobs = jobs
        self.current_dir = os.path.abspath(os.path.dirname(__file__))
        self.prefix = os.path.join(os.path.abspath(prefix_dir), self.name)
        self.bin_dir = os.path.join(self.prefix, "bin")

    def compress(self) -> None:
        """压缩安装完成的工具链"""
        prefix_dir = os.path.dirname(self.prefix)
        run_command(f"tar -cf {self.name}.tar {self.name}", prefix_dir)
        memory_MB = psutil.virtual_memory().available // 1048576 + 3072
        run_command(f"xz -fev9 -T 0 --memlimit={memory_MB}MiB {self.name}.tar", prefix_dir)

    def register_in_env(self) -> None:
        """注册安装路径到环境变量"""
        path_list = os.environ.get("PATH", "").split(os.pathsep)
        if self.bin_dir not in path_list:
            os.environ["PATH"] = os.pathsep.join((self.bin_dir, *filter(None, path_list)))


def _check_home(home: str) -> None:
    assert os.path.exists(home), f'The home dir "{home}" does not exist.'


class basic_configure:
    home: str  # 源码树根目录

    def __init__(self, home: str = os.environ.get("HOME", os.getcwd())) -> None:
        self.home = os.path.abspath(home)

    @staticmethod
    def add_argument(parser: argparse.ArgumentParser) -> None:
        """为argparse添加--home、--export、--import和--dry-run选项

        Args:
            parser (argparse.ArgumentParser): 命令行解析器
        """
        parser.add_argument(
            "--home", type=str, help="The home directory to find source trees.", default=os.environ.get("HOME", os.getcwd())
        )
        parser.add_argument("--export", dest="export_file", type=str, help="Export settings to specific file.")
        parser.add_argument("--import", dest="import_file", type=str, help="Import settings from specific file.")
        parser.add_argument(
            "-d",
            "--dry-run",
            dest="dry_run",
            action=argparse.BooleanOptionalAction,
            help="Preview the commands without actually executing them.",
            default=False,
        )

    @classmethod
    def parse_args(cls, args: argparse.Namespace):
        command_dry_run.set(args.dry_run)
        args_list = vars(args)
        parma_list: list = []
        for parma in itertools.islice(inspect.signature(cls.__init__).parameters.keys(), 1, None):
            assert parma in args_list, f"The parma {parma} is not in args. Every parma except self should be able to find in args."
            parma_list.append(args_list[parma])
        return cls(*parma_list)

    def save_config(self, args: argparse.Namespace) -> None:
        """将配置保存到文件，使用json格式

        Args:
            args (argparse.Namespace): 用户输入参数

        Raises:
            RuntimeError: 保存失败抛出异常
        """
        export_file: str | None = args.export_file
        if export_file:
            if command_dry_run.get():
                log(f'Skip writing settings to file "{export_file}" in dry run.')
                return
            try:
                with open(export_file, "w") as file:
                    json.dump(vars(self), file, indent=4)
                log(f'Settings have been written to file "{export_file}"')
            except OSError as e:
                raise RuntimeError(f"Export settings failed: {e}")

    def load_config(self, args: argparse.Namespace) -> None:
        """从配置文件中加载配置，然后合并加载的配置和用户输入的配置

        Args:
            args (argparse.Namespace): 用户输入参数

        Raises:
            RuntimeError: 加载失败抛出异常
        """
        import_file: str | None = args.import_file
        if import_file:
            try:
                with open(import_file) as file:
                    import_config_list = json.load(file)
            except (OSError, ValueError) as e:
                raise RuntimeError(f'Import file "{import_file}" failed: {e}')
            if not isinstance(import_config_list, dict):
                raise RuntimeError(f'Invalid configure file "{import_file}".')
            current_config_list = vars(self)
            default_config_list = vars(type(self)())
            self.__dict__ = {
                # 用户输入的值与默认值相同时使用配置文件中的值，配置文件中没有则使用默认值
                key: (import_config_list.get(key, default_config_list[key]) if value == default_config_list[key] else value)
                for key, value in current_config_list.items()
            }


assert __name__ != "__main__", "Import this file instead of running it directly."
