#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import argparse
import dataclasses
import math
import os
import sys
from collections.abc import Iterable
import common
import project_list
from planner import build_planner, selection_error
from project import project
from toolchain_environment import environment
from toolchain_state import host_environment, toolchain_state


class configure(common.basic_configure):
    jobs: int  # 并发数
    prefix_dir: str  # 工具链安装根目录

    def __init__(
        self,
        home: str = os.environ.get("HOME", os.getcwd()),
        jobs: int = math.floor((os.cpu_count() or 1) * 1.5),
        prefix_dir: str = os.environ.get("HOME", os.getcwd()),
    ) -> None:
        super().__init__(home)
        self.jobs = jobs
        self.prefix_dir = prefix_dir

    def check(self) -> None:
        common._check_home(self.home)
        assert self.jobs > 0, f"Invalid jobs: {self.jobs}."


@dataclasses.dataclass(frozen=True)
class run_configuration:
    """由命令行参数生成的本次运行配置，生成后不再修改"""

    level: common.message_level = common.message_level.normal  # 信息输出等级
    dry_run: bool = False  # 是否只显示命令而不执行
    skip: tuple[str, ...] = ()  # 要跳过的项目
    only: tuple[str, ...] = ()  # 只构建的项目
    no_install: bool = False  # 是否跳过安装步骤
    reconfigure: bool = False  # 是否强制重新配置
    force: bool = False  # 是否忽略项目的构建条件
    build_here: bool = False  # 是否在当前目录下建立构建目录
    package: bool = False  # 是否在构建完成后打包工具链


def split_name_list(value_list: Iterable[str] | None) -> tuple[str, ...]:
    """展开可重复且以逗号分隔的项目名列表，如["a,b", "c"] -> ("a", "b", "c")"""
    return tuple(name.strip() for value in value_list or () for name in value.split(",") if name.strip())


def get_run_configuration(args: argparse.Namespace) -> run_configuration:
    if args.silent:
        level = common.message_level.silent
    elif args.quiet:
        level = common.message_level.quiet
    else:
        level = common.message_level.normal
    return run_configuration(
        level=level,
        dry_run=args.dry_run,
        skip=split_name_list(args.skip),
        only=split_name_list(args.only),
        no_install=args.no_install,
        reconfigure=args.reconfigure,
        force=args.force,
        build_here=args.build_here,
        package=args.package,
    )


def get_build_root(run_config: run_configuration) -> str | None:
    """获取构建根目录，None表示使用构建脚本所在项目下的build目录"""
    return os.path.join(os.getcwd(), "build") if run_config.build_here else None


def build(
    config: configure,
    run_config: run_configuration,
    catalog: Iterable[project] | None = None,
    host: host_environment | None = None,
    state: toolchain_state | None = None,
) -> toolchain_state:
    """按顺序构建所有选中的项目

    Args:
        config (configure): 持久化配置
        run_config (run_configuration): 本次运行配置
        catalog (Iterable[project] | None, optional): 项目列表. 默认为project_list.catalog().
        host (host_environment | None, optional): 宿主环境. 默认探测当前系统.
        state (toolchain_state | None, optional): 记录构建状态的对象. 默认为新建的空状态.

    Raises:
        selection_error: skip/only列表不合法时在构建前抛出异常
        ValueError: 项目列表中存在重名项目时抛出异常
        RuntimeError: 命令执行失败时抛出异常

    Returns:
        toolchain_state: 本次运行中各项目的构建状态
    """
    common.command_dry_run.set(run_config.dry_run)
    common.command_verbosity.set(run_config.level)
    catalog = project_list.catalog() if catalog is None else tuple(catalog)
    project_list.check_unique(catalog)
    planner = build_planner(catalog, run_config.skip, run_config.only, run_config.force)
    selected = planner.selected_projects()

    env = environment(config.home, config.jobs, config.prefix_dir, get_build_root(run_config), run_config.reconfigure, run_config.no_install)
    # 让后续项目能够找到刚安装的工具
    env.register_in_env()
    common.mkdir(env.build_root)

    host = host or host_environment()
    state = toolchain_state() if state is None else state
    for item in selected:
        if not planner.should_build(item, state.snapshot(), host):
            assert item.predicate
            common.log(f'Skip {item.name}, because "{item.predicate.describe()}" is not satisfied.')
            state.mark_skipped(item.name)
            continue
        common.log(f"Building {item.name}...")
        env.run_project(item)
        state.mark_built(item.name)

    if run_config.package:
        env.compress()
    common.log("All selected projects have been processed.")
    return state


def dump_projects(catalog: Iterable[project]) -> None:
    """打印所有项目名"""
    for name in project_list.names(catalog):
        print(name)


def get_parser(default_config: configure) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build arm-none-eabi gcc toolchain for Cortex-M.", formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    configure.add_argument(parser)
    parser.add_argument(
        "--jobs",
        type=int,
        help="Number of concurrent jobs at build time. Use 1.5 times of cpu cores by default.",
        default=default_config.jobs,
    )
    parser.add_argument("--prefix-dir", type=str, help="The dir contains the prefix dir.", default=default_config.prefix_dir)
    parser.add_argument("-q", "--quiet", action="store_true", help="Hide the output of external commands.")
    parser.add_argument("-s", "--silent", action="store_true", help="Hide all messages.")
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--skip", action="append", metavar="NAME[,NAME...]", help="Skip the given projects.")
    selection.add_argument("--only", action="append", metavar="NAME[,NAME...]", help="Build only the given projects.")
    parser.add_argument("--list-projects", action="store_true", help="Print all projects and exit.")
    parser.add_argument("--no-install", action="store_true", help="Skip the install step of every project.")
    parser.add_argument("--reconfigure", action="store_true", help="Run configure even if the project is already configured.")
    parser.add_argument("--force", action="store_true", help="Build projects even if their build conditions are not satisfied.")
    parser.add_argument("--build-here", action="store_true", help="Use build directory under current working directory.")
    parser.add_argument("--package", action="store_true", help="Compress the toolchain after building.")
    return parser


def main(argv: list[str] | None = None) -> int:
    default_config = configure()
    parser = get_parser(default_config)
    args = parser.parse_args(argv)

    run_config = get_run_configuration(args)
    common.command_verbosity.set(run_config.level)

    if args.list_projects:
        dump_projects(project_list.catalog())
        return 0

    current_config = configure.parse_args(args)
    try:
        current_config.load_config(args)
        current_config.check()
    except (RuntimeError, AssertionError) as e:
        parser.error(str(e))

    try:
        build(current_config, run_config)
        current_config.save_config(args)
    except selection_error as e:
        parser.error(str(e))
    except (RuntimeError, FileNotFoundError) as e:
        common.log_error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
