"""GitHub Star 分类浏览 CLI"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import get_settings
from .errors import StarClassifierError
from .log import setup_logging

app = typer.Typer(name="ghsc", help="按标签、热度、成熟度、活跃度、收藏时间浏览 GitHub Star 项目")
tag_app = typer.Typer(help="管理标签")
rule_app = typer.Typer(help="管理关键词规则")
config_app = typer.Typer(help="查看和修改用户配置")
app.add_typer(tag_app, name="tag")
app.add_typer(rule_app, name="rule")
app.add_typer(config_app, name="config")

console = Console()

DB_OPTION = typer.Option(None, "--db", help="数据库文件路径")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="日志级别"),
):
    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_file)


def _service(db_path: Optional[Path]):
    from .core.database import StarDatabase
    from .core.fetcher import GitHubStarFetcher
    from .core.service import StarClassifierService

    settings = get_settings()
    db = StarDatabase(str(db_path) if db_path else settings.db_path)
    fetcher = GitHubStarFetcher(
        token=settings.github_token,
        per_page=settings.per_page,
        page_delay=settings.fetch_delay,
    )
    return StarClassifierService(db, fetcher, default_username=settings.username)


def _fail(error: Exception):
    console.print(f"[red]{error}[/red]")
    raise typer.Exit(code=1)


def _repo_table(title: str, repos) -> Table:
    table = Table(title=title)
    table.add_column("项目", style="cyan", no_wrap=True)
    table.add_column("描述", max_width=50)
    table.add_column("语言", style="yellow")
    table.add_column("Stars", justify="right")
    table.add_column("收藏时间")

    for r in repos:
        desc = r.description or ""
        if len(desc) > 50:
            desc = desc[:47] + "..."
        table.add_row(
            r.full_name,
            desc,
            r.language or "-",
            str(r.stargazers_count),
            (r.starred_at or "-")[:10],
        )
    return table


@app.command()
def sync(db_path: Optional[Path] = DB_OPTION):
    """
    同步 GitHub Star 项目到本地数据库

    同步失败时不会修改已有数据
    """
    service = _service(db_path)
    try:
        with console.status("[cyan]获取 GitHub Star 项目..."):
            repos = service.sync()
    except StarClassifierError as e:
        _fail(e)

    console.print(f"[bold green]同步完成![/bold green] 成功获取 {len(repos)} 个 starred 仓库")
    console.print(f"  分类数: {len(service.categories)}")


@app.command()
def status(
    rate_limit: bool = typer.Option(False, "--rate-limit", help="同时查询 GitHub API 限额"),
    db_path: Optional[Path] = DB_OPTION,
):
    """查看数据库状态"""
    service = _service(db_path)
    status = service.status(include_rate_limit=rate_limit)

    console.print("\n[bold]数据库状态[/bold]")
    console.print(f"  数据库路径: {service.db.db_path}")
    console.print(f"  用户名: {status['username'] or '-'}")
    console.print(f"  总项目数: {status['total_repos']}")
    console.print(f"  标签数: {status['total_tags']}")
    console.print(f"  规则数: {status['total_rules']}")
    console.print(f"  最后同步: {status['last_sync'] or '从未同步'}")
    console.print(f"  存储占用: {status['storage_total'] / 1024:.1f} KB")
    for key, size in status["storage"].items():
        console.print(f"    {key}: {size} B")

    if rate_limit:
        limit = status["rate_limit"]
        if limit is None:
            console.print("  API 限额: [yellow]获取失败[/yellow]")
        else:
            console.print(f"  API 限额: {limit.get('remaining')}/{limit.get('limit')}")


@app.command(name="view")
def view_repos(
    view: str = typer.Argument(..., help="视图: time/popularity/maturity/activity/tags"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="分类 key，默认视图的默认分类"),
    search: str = typer.Option("", "--search", "-s", help="搜索关键字"),
    sort: Optional[str] = typer.Option(None, "--sort", help="排序: name/stars/updated/created/starred"),
    order: Optional[str] = typer.Option(None, "--order", help="排序方向: asc/desc"),
    page: int = typer.Option(1, "--page", "-p", help="页码，从 1 开始"),
    page_size: Optional[int] = typer.Option(None, "--page-size", "-n", help="每页数量"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="只看某种语言"),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON 格式输出"),
    db_path: Optional[Path] = DB_OPTION,
):
    """
    按视图浏览 Star 项目

    示例:
      ghsc view popularity
      ghsc view activity -c dormant --sort stars
      ghsc view tags -c frontend -s react -p 2 -l TypeScript
    """
    service = _service(db_path)
    try:
        levels, grouped, state, result = service.browse(
            view,
            category=category,
            query=search,
            sort_key=sort,
            order=order,
            page=page,
            page_size=page_size or get_settings().page_size,
            language=language,
        )
    except (StarClassifierError, ValueError) as e:
        _fail(e)

    total_repos = len(service.repos)
    filtered_total = state.filtered_total(grouped)

    if json_output:
        payload = {
            "category": state.active_category,
            "total": result.total,
            "page": result.page,
            "page_count": result.page_count,
            "filtered_total": filtered_total,
            "total_repos": total_repos,
            "languages": service.languages(),
            "items": [r.to_dict() for r in result.items],
        }
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    # 有搜索或语言条件时显示 过滤后/全部
    console.print(
        f"共 {filtered_total}/{total_repos} 个仓库" if state.is_filtered else f"共 {total_repos} 个仓库"
    )
    counts = ", ".join(f"{lvl.key}({len(grouped.get(lvl.key, []))})" for lvl in levels)
    console.print(f"[dim]分类: {counts}[/dim]")

    if result.total == 0:
        if grouped.get(state.active_category):
            console.print("[yellow]没有符合搜索条件的项目[/yellow]")
        else:
            console.print("[yellow]该分类下暂无项目[/yellow]")
        return

    console.print(_repo_table(f"{view} / {state.active_category}", result.items))
    console.print(f"第 {result.page}/{result.page_count} 页，共 {result.total} 个项目")


@app.command()
def categories(db_path: Optional[Path] = DB_OPTION):
    """查看按标签生成的分类"""
    service = _service(db_path)
    if not service.categories:
        console.print("[yellow]暂无分类，请先运行 'ghsc sync'[/yellow]")
        return

    table = Table(title="标签分类")
    table.add_column("ID", style="cyan")
    table.add_column("名称")
    table.add_column("项目数", justify="right")
    for c in service.categories:
        table.add_row(c.id, c.name, str(len(c.repos)))
    console.print(table)


@app.command()
def stats(db_path: Optional[Path] = DB_OPTION):
    """收藏概览"""
    data = _service(db_path).stats()

    console.print("\n[bold]收藏概览[/bold]")
    console.print(f"  项目总数: {data['total_repos']}")
    console.print(f"  Star 总数: {data['total_stars']}")
    console.print(f"  语言数: {data['total_languages']}")
    console.print(f"  分类数: {data['total_categories']}")
    if data["most_starred"]:
        top = data["most_starred"]
        console.print(f"  最受欢迎: {top.full_name} ({top.stargazers_count})")

    if data["categories"]:
        table = Table(title="分类统计")
        table.add_column("分类", style="cyan")
        table.add_column("项目数", justify="right")
        table.add_column("Stars", justify="right")
        table.add_column("占比", justify="right")
        for c in data["categories"]:
            table.add_row(c["name"], str(c["count"]), str(c["total_stars"]), f"{c['percentage']:.1f}%")
        console.print(table)

    if data["top_languages"]:
        table = Table(title="常用语言")
        table.add_column("语言", style="yellow")
        table.add_column("项目数", justify="right")
        for language, count in data["top_languages"]:
            table.add_row(language, str(count))
        console.print(table)

    if data["recent_repos"]:
        table = Table(title="最近更新")
        table.add_column("项目", style="cyan")
        table.add_column("最后推送")
        for r in data["recent_repos"]:
            table.add_row(r.full_name, (r.last_activity_at or "-")[:10])
        console.print(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="搜索关键字，匹配名称、全名、描述、主题、语言"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="只看某种语言"),
    limit: int = typer.Option(20, "--limit", "-n", help="最多显示的数量"),
    db_path: Optional[Path] = DB_OPTION,
):
    """在全部 Star 项目中搜索"""
    service = _service(db_path)
    results = service.search(query, language)
    if not results:
        console.print("[yellow]没有符合搜索条件的项目[/yellow]")
        return

    console.print(_repo_table(f"搜索: {query}", results[:limit]))
    console.print(f"共 {len(results)}/{len(service.repos)} 个项目")
    languages = service.languages()
    if languages and not language:
        console.print(f"[dim]可用语言: {', '.join(languages)}[/dim]")


@app.command(name="export")
def export_data(
    output: Optional[Path] = typer.Argument(None, help="输出文件，不指定则打印"),
    db_path: Optional[Path] = DB_OPTION,
):
    """导出全部数据为 JSON"""
    data = _service(db_path).export_data()
    if output is None:
        typer.echo(data)
        return
    output.write_text(data, encoding="utf-8")
    console.print(f"[green]已导出到 {output}[/green]")


@app.command(name="import")
def import_data(
    source: Path = typer.Argument(..., help="JSON 文件路径"),
    db_path: Optional[Path] = DB_OPTION,
):
    """从 JSON 导入数据，只覆盖文件中出现的字段"""
    service = _service(db_path)
    try:
        service.import_data(source.read_text(encoding="utf-8"))
    except OSError as e:
        _fail(f"无法读取文件: {e}")
    except StarClassifierError as e:
        _fail(e)
    console.print("[green]数据导入成功[/green]")


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="不询问直接清除"),
    db_path: Optional[Path] = DB_OPTION,
):
    """清除全部本地数据"""
    if not yes:
        typer.confirm("确定要清除所有数据吗?", abort=True)
    _service(db_path).clear_all()
    console.print("[green]所有数据已清除[/green]")


@app.command()
def web(
    port: int = typer.Option(8000, "--port", "-p", help="端口号"),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="主机地址"),
    db_path: Optional[Path] = DB_OPTION,
):
    """
    启动 Web 界面
    """
    import uvicorn

    from .web.app import create_app

    db_file = str(db_path) if db_path else get_settings().db_path

    console.print(f"启动 Web 服务: http://{host}:{port}")
    uvicorn_app = create_app(db_file)
    uvicorn.run(uvicorn_app, host=host, port=port)


# ---- 配置 ----


@config_app.command("show")
def config_show(db_path: Optional[Path] = DB_OPTION):
    config = _service(db_path).config
    console.print(f"  用户名: {config.username or '-'}")
    console.print(f"  Token: {'已设置' if config.github_token else '未设置'}")
    console.print(f"  自动分类: {'开' if config.auto_classify else '关'}")


@config_app.command("set")
def config_set(
    username: Optional[str] = typer.Option(None, "--username", "-u", help="GitHub 用户名"),
    token: Optional[str] = typer.Option(None, "--token", help="GitHub Token"),
    auto_classify: Optional[bool] = typer.Option(
        None, "--auto-classify/--no-auto-classify", help="规则变化后自动重新分类"
    ),
    db_path: Optional[Path] = DB_OPTION,
):
    changes = {
        key: value
        for key, value in (
            ("username", username),
            ("github_token", token),
            ("auto_classify", auto_classify),
        )
        if value is not None
    }
    if not changes:
        _fail("没有需要修改的配置")
    _service(db_path).update_config(**changes)
    console.print("[green]配置已保存[/green]")


# ---- 标签 ----


@tag_app.command("list")
def tag_list(db_path: Optional[Path] = DB_OPTION):
    service = _service(db_path)
    table = Table(title="标签")
    table.add_column("ID", style="cyan")
    table.add_column("名称")
    table.add_column("颜色")
    table.add_column("描述")
    for tag in service.tags:
        table.add_row(tag.id, tag.name, f"[{tag.color}]{tag.color}[/]", tag.description or "")
    console.print(table)


@tag_app.command("add")
def tag_add(
    name: str = typer.Argument(..., help="标签名称"),
    color: str = typer.Option("#1890ff", "--color", help="颜色"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="描述"),
    db_path: Optional[Path] = DB_OPTION,
):
    try:
        tag = _service(db_path).add_tag(name, color, description)
    except StarClassifierError as e:
        _fail(e)
    console.print(f"[green]标签添加成功: {tag.id}[/green]")


@tag_app.command("update")
def tag_update(
    tag_id: str = typer.Argument(..., help="标签 ID"),
    name: Optional[str] = typer.Option(None, "--name"),
    color: Optional[str] = typer.Option(None, "--color"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    db_path: Optional[Path] = DB_OPTION,
):
    updates = {
        key: value
        for key, value in (("name", name), ("color", color), ("description", description))
        if value is not None
    }
    try:
        _service(db_path).update_tag(tag_id, **updates)
    except StarClassifierError as e:
        _fail(e)
    console.print("[green]标签更新成功[/green]")


@tag_app.command("delete")
def tag_delete(
    tag_id: str = typer.Argument(..., help="标签 ID"),
    db_path: Optional[Path] = DB_OPTION,
):
    """删除标签，同时删除指向它的关键词规则"""
    try:
        _service(db_path).delete_tag(tag_id)
    except StarClassifierError as e:
        _fail(e)
    console.print("[green]标签删除成功[/green]")


# ---- 关键词规则 ----


@rule_app.command("list")
def rule_list(db_path: Optional[Path] = DB_OPTION):
    service = _service(db_path)
    tag_names = {tag.id: tag.name for tag in service.tags}
    table = Table(title="关键词规则")
    table.add_column("#", justify="right")
    table.add_column("标签", style="cyan")
    table.add_column("优先级", justify="right")
    table.add_column("关键词", max_width=60)
    for index, rule in enumerate(service.rules):
        # 标签不存在的规则不会生效
        tag = tag_names.get(rule.tag_id, f"[red]{rule.tag_id} (不存在)[/red]")
        table.add_row(str(index), tag, str(rule.priority), ", ".join(rule.keywords))
    console.print(table)


@rule_app.command("add")
def rule_add(
    tag_id: str = typer.Argument(..., help="标签 ID"),
    keywords: str = typer.Argument(..., help="关键词，逗号分隔"),
    priority: int = typer.Option(10, "--priority", help="优先级，越大越优先"),
    db_path: Optional[Path] = DB_OPTION,
):
    try:
        _service(db_path).add_rule(keywords.split(","), tag_id, priority)
    except StarClassifierError as e:
        _fail(e)
    console.print("[green]关键词规则添加成功[/green]")


@rule_app.command("update")
def rule_update(
    index: int = typer.Argument(..., help="规则序号"),
    tag_id: Optional[str] = typer.Option(None, "--tag"),
    keywords: Optional[str] = typer.Option(None, "--keywords", help="关键词，逗号分隔"),
    priority: Optional[int] = typer.Option(None, "--priority"),
    db_path: Optional[Path] = DB_OPTION,
):
    updates: dict = {}
    if tag_id is not None:
        updates["tag_id"] = tag_id
    if keywords is not None:
        updates["keywords"] = [k.strip() for k in keywords.split(",") if k.strip()]
    if priority is not None:
        updates["priority"] = priority
    try:
        _service(db_path).update_rule(index, **updates)
    except StarClassifierError as e:
        _fail(e)
    console.print("[green]关键词规则更新成功[/green]")


@rule_app.command("delete")
def rule_delete(
    index: int = typer.Argument(..., help="规则序号"),
    db_path: Optional[Path] = DB_OPTION,
):
    try:
        _service(db_path).delete_rule(index)
    except StarClassifierError as e:
        _fail(e)
    console.print("[green]关键词规则删除成功[/green]")


if __name__ == "__main__":
    app()
