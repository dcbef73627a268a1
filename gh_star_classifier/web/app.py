"""Web 界面 - FastAPI"""

import html
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from ..config import get_settings
from ..errors import RemoteSourceError, StarClassifierError, UserNotFoundError, ValidationError
from ..core.pipeline import DEFAULT_PAGE_SIZE
from ..core.views import BUCKET_VIEWS, DEFAULT_SORT_OPTIONS, VIEW_KEYS

# HTML 模板
INDEX_HTML = """
<!DOCTYPE html>
<html lang="zh-CN">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>GitHub Star Classifier</title>
    <script src="https://unpkg.com/htmx.org@1.9.10"></script>
    <script src="https://cdn.tailwindcss.com"></script>
</head>
<body class="bg-gray-100 min-h-screen">
    <div class="container mx-auto px-4 py-8 max-w-5xl">
        <h1 class="text-3xl font-bold text-center mb-8 text-gray-800">
            GitHub Star Classifier
        </h1>

        <div class="flex justify-center gap-2 mb-6">
            {view_tabs}
        </div>

        <div id="results" hx-get="/views/time" hx-trigger="load"></div>

        <div class="text-center text-gray-400 text-sm mt-8">
            共 {total_repos} 个项目，最后同步: {last_sync}，存储占用 {storage_kb:.1f} KB
        </div>
    </div>
</body>
</html>
"""

VIEW_TAB_HTML = """
<button hx-get="/views/{view}" hx-target="#results"
        class="px-4 py-2 bg-white rounded-lg shadow-md hover:bg-blue-50">{label}</button>
"""

SEARCH_FORM_HTML = """
<form hx-get="/views/{view}" hx-target="#results" class="flex gap-4 mb-4">
    <input type="hidden" name="category" value="{category}">
    <input type="text" name="q" value="{query}" placeholder="搜索仓库名称、描述、主题或语言"
           class="flex-1 px-4 py-2 border border-gray-300 rounded-lg">
    <select name="language" class="border border-gray-300 rounded px-2 py-1">{language_options}</select>
    <select name="sort" class="border border-gray-300 rounded px-2 py-1">{sort_options}</select>
    <button type="submit" class="px-6 py-2 bg-blue-500 text-white rounded-lg hover:bg-blue-600">搜索</button>
</form>
"""

CATEGORY_TAB_HTML = """
<a hx-get="/views/{view}?category={key}" hx-target="#results"
   class="px-3 py-1 rounded cursor-pointer {active_class}">{name} ({count})</a>
"""

RESULT_ITEM_HTML = """
<div class="bg-white rounded-lg shadow-md p-4 hover:shadow-lg transition-shadow">
    <div class="flex justify-between items-start mb-2">
        <a href="{html_url}" target="_blank" class="text-lg font-semibold text-blue-600 hover:underline">
            {full_name}
        </a>
        <div class="flex items-center gap-2 text-sm text-gray-500">
            <span class="bg-gray-100 px-2 py-1 rounded">{language}</span>
            <span>⭐ {stargazers_count}</span>
        </div>
    </div>
    <p class="text-gray-600 text-sm">{description}</p>
</div>
"""


def _url_part(value: str) -> str:
    """放进 hx-get 属性的路径或查询参数：先做 URL 编码再做 HTML 转义"""
    return html.escape(quote(value, safe=""))


def _options(values, selected: Optional[str]) -> str:
    return "".join(
        f'<option value="{html.escape(value)}"{" selected" if value == selected else ""}>'
        f"{html.escape(value)}</option>"
        for value in values
    )


def create_app(db_path: Optional[str] = None) -> FastAPI:
    """创建 FastAPI 应用"""
    from ..core.database import StarDatabase
    from ..core.fetcher import GitHubStarFetcher
    from ..core.service import StarClassifierService

    settings = get_settings()
    db_file = db_path or settings.db_path

    app = FastAPI(title="GitHub Star Classifier")

    # 初始化组件 (懒加载)
    _components: dict = {}

    def get_service() -> StarClassifierService:
        if not _components:
            fetcher = GitHubStarFetcher(
                token=settings.github_token,
                per_page=settings.per_page,
                page_delay=settings.fetch_delay,
            )
            _components["service"] = StarClassifierService(
                StarDatabase(db_file), fetcher, default_username=settings.username
            )
        return _components["service"]

    def render(view: str, category, q, sort, order, page, page_size, language):
        try:
            return get_service().browse(
                view,
                category=category,
                query=q,
                sort_key=sort,
                order=order,
                page=page,
                page_size=page_size,
                language=language or None,
            )
        except (ValidationError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/", response_class=HTMLResponse)
    async def index():
        """主页"""
        status = get_service().status()
        view_tabs = "".join(
            VIEW_TAB_HTML.format(view=_url_part(v), label=html.escape(v)) for v in VIEW_KEYS
        )
        return INDEX_HTML.format(
            view_tabs=view_tabs,
            total_repos=status["total_repos"],
            last_sync=html.escape(status["last_sync"] or "从未同步"),
            storage_kb=status["storage_total"] / 1024,
        )

    @app.get("/views/{view}", response_class=HTMLResponse)
    async def view_fragment(
        view: str,
        category: Optional[str] = Query(None),
        q: str = Query(""),
        sort: Optional[str] = Query(None),
        order: Optional[str] = Query(None),
        page: int = Query(1),
        page_size: int = Query(DEFAULT_PAGE_SIZE),
        language: Optional[str] = Query(None),
    ):
        """视图 - 返回 HTML 片段"""
        levels, grouped, state, result = render(
            view, category, q, sort or None, order, page, page_size, language
        )
        service = get_service()

        tabs = "".join(
            CATEGORY_TAB_HTML.format(
                view=_url_part(view),
                key=_url_part(level.key),
                name=html.escape(f"{level.icon or ''} {level.name}".strip()),
                count=len(grouped.get(level.key, [])),
                active_class="bg-blue-500 text-white" if level.key == state.active_category else "bg-gray-200",
            )
            for level in levels
        )
        sort_keys = BUCKET_VIEWS[view].sort_options if view in BUCKET_VIEWS else DEFAULT_SORT_OPTIONS
        total_repos = len(service.repos)
        count_label = (
            f"{state.filtered_total(grouped)}/{total_repos}" if state.is_filtered else str(total_repos)
        )
        html_parts = [
            SEARCH_FORM_HTML.format(
                view=_url_part(view),
                category=html.escape(state.active_category or ""),
                query=html.escape(state.query),
                language_options=_options(["all", *service.languages()], state.language or "all"),
                sort_options=_options(sort_keys, state.sort_key),
            ),
            f'<div class="flex flex-wrap gap-2 mb-4">{tabs}</div>',
            f'<p class="text-right text-gray-500 text-sm mb-2">共 {count_label} 个仓库</p>',
        ]

        if result.total == 0:
            html_parts.append('<div class="text-center text-gray-500 py-8">暂无项目</div>')
            return "".join(html_parts)

        html_parts.append(
            f'<div class="space-y-4"><p class="text-gray-600 mb-4">'
            f"第 {result.page}/{result.page_count} 页，共 {result.total} 个项目</p>"
        )
        for r in result.items:
            html_parts.append(
                RESULT_ITEM_HTML.format(
                    html_url=html.escape(r.html_url),
                    full_name=html.escape(r.full_name),
                    language=html.escape(r.language or "-"),
                    stargazers_count=r.stargazers_count,
                    description=html.escape(r.description or "无描述"),
                )
            )
        html_parts.append("</div>")
        return "".join(html_parts)

    @app.get("/api/views/{view}")
    async def api_view(
        view: str,
        category: Optional[str] = Query(None),
        q: str = Query(""),
        sort: Optional[str] = Query(None),
        order: Optional[str] = Query(None),
        page: int = Query(1),
        page_size: int = Query(DEFAULT_PAGE_SIZE),
        language: Optional[str] = Query(None),
    ):
        """视图 API - 返回 JSON"""
        levels, grouped, state, result = render(view, category, q, sort, order, page, page_size, language)
        return {
            "view": view,
            "category": state.active_category,
            "categories": [
                {"key": level.key, "name": level.name, "count": len(grouped.get(level.key, []))}
                for level in levels
            ],
            "total": result.total,
            "page": result.page,
            "page_count": result.page_count,
            "filtered_total": state.filtered_total(grouped),
            "total_repos": len(get_service().repos),
            "languages": get_service().languages(),
            "items": [r.to_dict() for r in result.items],
        }

    @app.get("/api/search")
    async def api_search(
        q: str = Query(""),
        language: Optional[str] = Query(None),
        limit: int = Query(20),
    ):
        """全局搜索 API"""
        results = get_service().search(q, language)
        return {"total": len(results), "items": [r.to_dict() for r in results[:limit]]}

    @app.get("/api/status")
    def api_status(rate_limit: bool = Query(False)):
        """状态 API；rate_limit=true 时额外调用 gh 查询限额"""
        return get_service().status(include_rate_limit=rate_limit)

    @app.get("/api/categories")
    async def api_categories():
        return [
            {"id": c.id, "name": c.name, "color": c.color, "count": len(c.repos)}
            for c in get_service().categories
        ]

    @app.get("/api/stats")
    async def api_stats():
        data = get_service().stats()
        top = data["most_starred"]
        data["most_starred"] = top.to_dict() if top else None
        data["recent_repos"] = [r.to_dict() for r in data["recent_repos"]]
        return data

    @app.get("/api/tags")
    async def api_tags():
        return [t.to_dict() for t in get_service().tags]

    @app.get("/api/rules")
    async def api_rules():
        return [r.to_dict() for r in get_service().rules]

    @app.post("/api/reclassify")
    async def api_reclassify():
        try:
            categories = get_service().reclassify()
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"categories": len(categories)}

    @app.post("/api/sync")
    def api_sync():
        # 在线程池中执行；数据库连接的访问由 StarDatabase 内部加锁串行化
        try:
            repos = get_service().sync()
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except UserNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except RemoteSourceError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"total_repos": len(repos)}

    @app.get("/api/export", response_class=PlainTextResponse)
    async def api_export():
        return PlainTextResponse(get_service().export_data(), media_type="application/json")

    @app.post("/api/import")
    async def api_import(request: Request):
        payload = (await request.body()).decode("utf-8", errors="replace")
        try:
            get_service().import_data(payload)
        except StarClassifierError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True}

    return app
