"""The build definition: targets for cleaning, compiling, testing, versioning,
publishing, packing and pushing the solution."""

from __future__ import annotations

from buildtree.context import BuildContext
from buildtree.fs import create_or_clean_directory, find_file, zip_to
from buildtree.graph import TargetGraph
from buildtree.tools import (
    is_on_hotfix_branch,
    is_on_main_branch,
    is_on_main_or_master_branch,
    is_on_release_branch,
)

DEFAULT_TARGET = "Compile"

COVERAGE_COLLECTOR = "XPlat Code Coverage"
COVERAGE_REPORT_NAME = "coverage.cobertura.xml"
COVERAGE_EXCLUDE_SETTING = (
    "DataCollectionRunSettings.DataCollectors.DataCollector.Configuration.ExcludeByAttribute"
)
COVERAGE_EXCLUDED_ATTRIBUTES = "Obsolete,GeneratedCodeAttribute,CompilerGeneratedAttribute"


def _log_repository(ctx: BuildContext) -> None:
    git = ctx.tools.git
    ctx.logger.info(f"Commit = {git.current_commit()}")
    ctx.logger.info(f"Branch = {git.current_branch()}")
    ctx.logger.info(f"Tags = {', '.join(git.tags()) or '-'}")


def print_info(ctx: BuildContext) -> None:
    branch = ctx.tools.git.current_branch()
    ctx.logger.info(f"MinVer Version = {ctx.tools.minver.version()}")
    _log_repository(ctx)

    ctx.logger.info(f"main branch = {is_on_main_branch(branch)}")
    ctx.logger.info(f"main/master branch = {is_on_main_or_master_branch(branch)}")
    ctx.logger.info(f"release/* branch = {is_on_release_branch(branch)}")
    ctx.logger.info(f"hotfix/* branch = {is_on_hotfix_branch(branch)}")

    ctx.logger.info(f"Remote URL = {ctx.tools.git.remote_url() or '-'}")
    ctx.logger.info(f"Local build = {ctx.is_local_build}")
    ctx.logger.info(f"Configuration = {ctx.configuration}")


def clean(ctx: BuildContext) -> None:
    create_or_clean_directory(ctx.artifacts_dir)


def restore(ctx: BuildContext) -> None:
    ctx.tools.dotnet.restore(ctx.solution.directory, force=True)


def compile_solution(ctx: BuildContext) -> None:
    ctx.logger.info(f"Building version {ctx.tools.minver.version()}")
    ctx.tools.dotnet.build(ctx.solution.directory, str(ctx.configuration))


def run_tests(ctx: BuildContext) -> None:
    ctx.logger.debug(f"RootDir: {ctx.root}")
    ctx.logger.debug(f"TestDir: {ctx.test_dir}")

    results_dir = create_or_clean_directory(ctx.results_dir)
    ctx.tools.dotnet.test(
        str(ctx.configuration),
        results_dir,
        COVERAGE_COLLECTOR,
        {COVERAGE_EXCLUDE_SETTING: COVERAGE_EXCLUDED_ATTRIBUTES},
    )

    coverage_report = find_file(results_dir, COVERAGE_REPORT_NAME, max_depth=2)
    if coverage_report is not None:
        ctx.tools.report_generator.generate([coverage_report], results_dir / "coveragereport")
    else:
        ctx.logger.warn(f"[yellow]No {COVERAGE_REPORT_NAME} found under {results_dir}[/yellow]")


def bump_version(ctx: BuildContext) -> None:
    _log_repository(ctx)

    tag = ctx.tools.minver.last_tag_version()
    if not tag:
        raise ValueError("minver did not report a version to tag")
    ctx.logger.info(f"MinVer Last Tag Version = {tag}")

    ctx.tools.git.tag(tag, force=True)
    ctx.tools.git.push(tags=True, force=True)

    ctx.logger.info(f"MinVer Version = {ctx.tools.minver.version()}")
    _log_repository(ctx)


def publish(ctx: BuildContext) -> None:
    publish_dir = create_or_clean_directory(ctx.publish_dir)
    ctx.tools.dotnet.publish(ctx.project_dir, publish_dir, str(ctx.configuration))

    archive = zip_to(publish_dir, ctx.pack_dir / f"{ctx.solution.name}.zip")
    ctx.logger.info(f"Created {archive}")


def pack(ctx: BuildContext) -> None:
    version = ctx.tools.minver.version()
    ctx.tools.dotnet.pack(ctx.project_dir, str(ctx.configuration), ctx.pack_dir / version)


def push(ctx: BuildContext) -> None:
    version = ctx.tools.minver.version()
    packages = sorted((ctx.pack_dir / version).glob("*.nupkg"))
    if not packages:
        raise FileNotFoundError(f"No packages found in {ctx.pack_dir / version}")

    for package in packages:
        ctx.logger.info(f"Pushing {package.name} to {ctx.nuget_source}")
        ctx.tools.dotnet.nuget_push(package, ctx.nuget_api_key, ctx.nuget_source)


def solution_contains_packable_project(ctx: BuildContext) -> bool:
    """Solution contains a packable project"""
    count = len(ctx.solution.packable_projects())
    ctx.logger.info(f"Packable projects found = {count}")
    return count > 0


def on_main_or_master_branch(ctx: BuildContext) -> bool:
    """Repository is on the main or master branch"""
    return is_on_main_or_master_branch(ctx.tools.git.current_branch())


def has_nuget_api_key(ctx: BuildContext) -> bool:
    """NuGet API key is provided"""
    return bool(ctx.nuget_api_key)


def create_graph() -> TargetGraph:
    """Register all build targets and return the built graph."""
    graph = TargetGraph()

    graph.define(
        "Print",
        print_info,
        description="Show version and repository information",
    )
    graph.define(
        "Clean",
        clean,
        description="Recreate the artifacts directory",
    )
    graph.define(
        "Restore",
        restore,
        after=["Clean"],
        description="Restore NuGet packages",
    )
    graph.define(
        "Compile",
        compile_solution,
        depends_on=["Clean", "Restore"],
        description="Build the solution",
        default=True,
    )
    graph.define(
        "Test",
        run_tests,
        depends_on=["Compile"],
        before=["Publish", "Pack"],
        description="Run tests with coverage and generate a coverage report",
    )
    graph.define(
        "BumpVersion",
        bump_version,
        before=["Compile"],
        description="Tag the last version and push tags",
    )
    graph.define(
        "Publish",
        publish,
        after=["Test"],
        depends_on=["Compile"],
        triggers=["Pack"],
        produces=["packages"],
        description="Publish the CLI project and zip it",
    )
    graph.define(
        "Pack",
        pack,
        after=["Test"],
        depends_on=["Compile"],
        only_when=solution_contains_packable_project,
        produces=["packages"],
        description="Create NuGet packages",
    )
    graph.define(
        "Push",
        push,
        depends_on=["Pack"],
        requires=[on_main_or_master_branch, has_nuget_api_key],
        description="Push NuGet packages",
    )

    return graph.build()
