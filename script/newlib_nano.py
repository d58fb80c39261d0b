import os
import common
from project import custom_install
from toolchain_environment import environment

# 需要以_nano后缀安装的库
nano_lib_list = ("libc.a", "libg.a", "libm.a")


def nano_name(lib: str) -> str:
    """获取库的newlib-nano别名，如libc.a -> libc_nano.a"""
    stem, ext = os.path.splitext(lib)
    return f"{stem}_nano{ext}"


def parse_multilib(output: str) -> list[str]:
    """解析gcc -print-multi-lib的输出

    Args:
        output (str): 命令输出，每行形如"thumb/v7-m/nofp;@mthumb@march=armv7-m@mfloat-abi=soft"

    Returns:
        list[str]: multilib目录列表，顶层目录为"."
    """
    return [line.split(";", 1)[0] for line in map(str.strip, output.splitlines()) if line]


class newlib_nano_install(custom_install):
    """将newlib-nano的库以_nano后缀安装到各个multilib目录，并安装newlib-nano专用的newlib.h"""

    def query_multilib(self, env: environment) -> list[str] | None:
        """向刚安装的编译器查询multilib配置

        Args:
            env (environment): 构建环境

        Returns:
            list[str] | None: multilib目录列表，dry run时返回None
        """
        result = common.run_command(f"{env.tool_prefix}gcc -print-multi-lib", capture=True)
        if result is None:
            return None
        return parse_multilib(result.stdout)

    def __call__(self, env: environment, build_dir: str) -> None:
        multilib_list = self.query_multilib(env)
        if multilib_list is None:
            common.log("Multilib list is unknown in dry run, skip copying nano libraries.")
            multilib_list = []
        for multilib in multilib_list:
            src_dir = os.path.normpath(os.path.join(build_dir, env.target, multilib, "newlib"))
            dst_dir = os.path.normpath(os.path.join(env.lib_prefix, "lib", multilib))
            for lib in nano_lib_list:
                common.copy(os.path.join(src_dir, lib), os.path.join(dst_dir, nano_name(lib)))

        # newlib.h中记录了nano的配置，需要和标准newlib的版本区分开
        header = os.path.join(build_dir, env.target, "newlib", "targ-include", "newlib.h")
        common.copy(header, os.path.join(env.lib_prefix, "include", "newlib-nano", "newlib.h"))


assert __name__ != "__main__", "Import this file instead of running it directly."
