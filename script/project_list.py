from collections.abc import Iterable
from project import project, when_not_built, when_program_missing
from newlib_nano import newlib_nano_install
from toolchain_environment import target

binutils_option = (
    "--disable-nls",
    "--disable-werror",
    "--enable-interwork",
    "--enable-multilib",
    "--with-gnu-as",
    "--with-gnu-ld",
)

# Cortex-M软浮点multilib配置，所有gcc共用
cortex_m_option = (
    "--with-multilib-list=rmprofile",
    "--with-float=soft",
    "--with-mode=thumb",
    "--enable-interwork",
    "--enable-multilib",
)

# 独立环境需禁用的特性列表
disable_hosted_option = (
    "--disable-nls",
    "--disable-werror",
    "--disable-shared",
    "--disable-threads",
    "--disable-libssp",
    "--disable-libgomp",
    "--disable-libquadmath",
    "--disable-libsanitizer",
    "--disable-tls",
    "--with-gnu-as",
    "--with-gnu-ld",
)

# 只用于编译newlib的最小gcc
gcc_bootstrap_option = (
    *cortex_m_option,
    *disable_hosted_option,
    "--enable-languages=c",
    "--without-headers",
    "--with-newlib",
)

gcc_option = (
    *cortex_m_option,
    *disable_hosted_option,
    "--enable-languages=c,c++",
    "--with-newlib",
    "--with-headers=yes",
    "--disable-libstdcxx-pch",
    "--disable-libstdcxx-verbose",
)

newlib_option = (
    "--disable-nls",
    "--enable-interwork",
    "--enable-multilib",
    "--enable-newlib-io-long-long",
    "--enable-newlib-register-fini",
    "--disable-newlib-supplied-syscalls",
    "--disable-newlib-fseek-optimization",
)

newlib_nano_option = (
    "--disable-nls",
    "--enable-interwork",
    "--enable-multilib",
    "--enable-newlib-reent-small",
    "--disable-newlib-fvwrite-in-streamio",
    "--disable-newlib-fseek-optimization",
    "--disable-newlib-wide-orient",
    "--enable-newlib-nano-malloc",
    "--disable-newlib-unbuf-stream-opt",
    "--enable-lite-exit",
    "--enable-newlib-global-atexit",
    "--enable-newlib-nano-formatted-io",
    "--disable-newlib-supplied-syscalls",
    '"CFLAGS_FOR_TARGET=-Os -ffunction-sections -fdata-sections"',
)


def catalog() -> tuple[project, ...]:
    """按依赖顺序排列的所有项目

    Returns:
        tuple[project, ...]: 项目列表
    """
    return (
        project("binutils", configure_args=binutils_option),
        # 已有交叉编译器时不需要自举
        project(
            "gcc-bootstrap",
            "gcc",
            gcc_bootstrap_option,
            when_program_missing(f"{target}-gcc"),
            build_targets=("all-gcc",),
            install_targets=("install-gcc",),
        ),
        project("newlib", configure_args=newlib_option),
        project("newlib-nano", "newlib", newlib_nano_option, install_action=newlib_nano_install()),
        project("gcc", configure_args=gcc_option),
        # 本次运行中自举过gcc时认为newlib已经和最终的gcc匹配
        project("newlib-final", "newlib", newlib_option, when_not_built("gcc-bootstrap")),
    )


def names(project_list: Iterable[project]) -> list[str]:
    """获取项目名列表"""
    return [item.name for item in project_list]


def check_unique(project_list: Iterable[project]) -> None:
    """检查项目名是否唯一

    Raises:
        ValueError: 存在重名项目时抛出异常
    """
    name_list = names(project_list)
    duplicate = sorted({name for name in name_list if name_list.count(name) > 1})
    if duplicate:
        raise ValueError(f"Duplicate project names: {', '.join(duplicate)}.")


assert __name__ != "__main__", "Import this file instead of running it directly."
