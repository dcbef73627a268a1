"""基于关键词规则的仓库分类"""

from typing import Iterable, Sequence

from ..models.repo import StarredRepo
from ..models.tag import Category, KeywordRule, Tag

OTHER_TAG_ID = "other"

DEFAULT_TAGS = [
    Tag("frontend", "Frontend", "#1890ff", "Frontend frameworks, libraries and tools"),
    Tag("backend", "Backend", "#52c41a", "Backend frameworks, APIs and servers"),
    Tag("mobile", "Mobile", "#722ed1", "Mobile app development"),
    Tag("ai-ml", "AI / ML", "#fa541c", "Artificial intelligence and machine learning"),
    Tag("devops", "DevOps", "#13c2c2", "Deployment, monitoring and operations"),
    Tag("database", "Database", "#eb2f96", "Databases and data storage"),
    Tag("tools", "Dev Tools", "#faad14", "Developer tooling"),
    Tag("game", "Game Dev", "#f759ab", "Game engines and game development"),
    Tag("security", "Security", "#ff4d4f", "Security and cryptography"),
    Tag("data", "Data Science", "#9254de", "Data analysis and visualization"),
    Tag("ui-ux", "UI/UX", "#36cfc9", "UI components and design systems"),
    Tag("testing", "Testing", "#ffc53d", "Testing frameworks and tools"),
    Tag("docs", "Docs", "#95de64", "Documentation and tutorials"),
    Tag(OTHER_TAG_ID, "Other", "#d9d9d9", "Uncategorized"),
]

DEFAULT_KEYWORD_RULES = [
    KeywordRule(
        ["react", "vue", "angular", "svelte", "frontend", "javascript", "typescript",
         "css", "html", "webpack", "vite", "next.js", "nuxt"],
        "frontend", 10,
    ),
    KeywordRule(
        ["node.js", "express", "koa", "nestjs", "spring", "django", "flask", "fastapi",
         "gin", "echo", "backend", "api", "server", "microservice"],
        "backend", 10,
    ),
    KeywordRule(
        ["react-native", "flutter", "ionic", "cordova", "xamarin", "android", "ios",
         "mobile", "app"],
        "mobile", 10,
    ),
    KeywordRule(
        ["tensorflow", "pytorch", "keras", "scikit-learn", "machine-learning",
         "deep-learning", "neural-network", "ai", "ml", "nlp", "computer-vision"],
        "ai-ml", 10,
    ),
    KeywordRule(
        ["docker", "kubernetes", "jenkins", "gitlab-ci", "github-actions", "terraform",
         "ansible", "devops", "ci-cd", "deployment"],
        "devops", 10,
    ),
    KeywordRule(
        ["mysql", "postgresql", "mongodb", "redis", "elasticsearch", "database", "sql",
         "nosql", "orm"],
        "database", 10,
    ),
    KeywordRule(
        ["vscode", "vim", "emacs", "git", "cli", "terminal", "shell", "bash", "zsh",
         "tool", "utility", "helper"],
        "tools", 8,
    ),
    KeywordRule(
        ["unity", "unreal", "godot", "game", "gaming", "gamedev", "engine"],
        "game", 10,
    ),
    KeywordRule(
        ["security", "encryption", "crypto", "ssl", "tls", "auth", "authentication",
         "authorization", "vulnerability"],
        "security", 10,
    ),
    KeywordRule(
        ["pandas", "numpy", "matplotlib", "jupyter", "data-science", "analytics",
         "visualization", "chart", "graph"],
        "data", 10,
    ),
    KeywordRule(
        ["ui", "ux", "design", "component", "antd", "material-ui", "bootstrap",
         "tailwind", "css-framework"],
        "ui-ux", 9,
    ),
    KeywordRule(
        ["jest", "mocha", "chai", "cypress", "selenium", "testing", "test", "unit-test",
         "e2e"],
        "testing", 9,
    ),
    KeywordRule(
        ["documentation", "docs", "readme", "tutorial", "guide", "book", "learning"],
        "docs", 7,
    ),
]


def default_tags() -> list[Tag]:
    """默认标签（副本）"""
    return [Tag(t.id, t.name, t.color, t.description) for t in DEFAULT_TAGS]


def default_keyword_rules() -> list[KeywordRule]:
    """默认关键词规则（副本）"""
    return [KeywordRule(list(r.keywords), r.tag_id, r.priority) for r in DEFAULT_KEYWORD_RULES]


class KeywordClassifier:
    """关键词分类器"""

    def classify(self, repo: StarredRepo, rules: Sequence[KeywordRule]) -> list[str]:
        """
        返回仓库命中的标签 id 列表

        关键词对 "名称 描述 主题 语言" 做不区分大小写的子串匹配；
        命中结果按优先级降序去重，同优先级保留规则原有顺序；
        没有命中任何规则时返回 ["other"]。
        """
        text = repo.to_search_text()
        matched = [
            (rule.tag_id, rule.priority)
            for rule in rules
            if any(keyword.lower() in text for keyword in rule.keywords)
        ]
        matched.sort(key=lambda item: item[1], reverse=True)

        tag_ids: list[str] = []
        for tag_id, _ in matched:
            if tag_id not in tag_ids:
                tag_ids.append(tag_id)

        return tag_ids or [OTHER_TAG_ID]

    def classify_all(
        self, repos: Iterable[StarredRepo], rules: Sequence[KeywordRule]
    ) -> dict[str, list[StarredRepo]]:
        """
        标签 -> 仓库列表

        一个仓库可以出现在多个标签下，各组数量之和是成员关系数，不是仓库数。
        """
        repos_by_tag: dict[str, list[StarredRepo]] = {}
        for repo in repos:
            for tag_id in self.classify(repo, rules):
                repos_by_tag.setdefault(tag_id, []).append(repo)
        return repos_by_tag

    def create_categories(
        self,
        repos: Sequence[StarredRepo],
        tags: Sequence[Tag],
        rules: Sequence[KeywordRule],
    ) -> list[Category]:
        """
        按标签生成分类

        只保留有成员的标签，按成员数降序，数量相同时保持标签声明顺序。
        引用不存在标签的规则不产生分类。
        """
        repos_by_tag = self.classify_all(repos, rules)
        categories = [
            Category(
                id=tag.id,
                name=tag.name,
                description=tag.description,
                color=tag.color,
                tags=[tag],
                repos=repos_by_tag[tag.id],
            )
            for tag in tags
            if repos_by_tag.get(tag.id)
        ]
        return sorted(categories, key=lambda c: len(c.repos), reverse=True)


def search_repos(repos: Sequence[StarredRepo], query: str) -> list[StarredRepo]:
    """在名称、描述、全名、主题、语言中搜索"""
    if not query.strip():
        return list(repos)

    needle = query.lower()
    return [
        repo
        for repo in repos
        if needle
        in " ".join(
            [repo.name, repo.description or "", repo.full_name, *repo.topics, repo.language or ""]
        ).lower()
    ]


def filter_by_language(repos: Sequence[StarredRepo], language: str) -> list[StarredRepo]:
    if not language or language == "all":
        return list(repos)
    return [repo for repo in repos if repo.language == language]


def get_languages(repos: Iterable[StarredRepo]) -> list[str]:
    """所有出现过的语言，排序去重"""
    return sorted({repo.language for repo in repos if repo.language})
