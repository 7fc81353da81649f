"""Group companies into the city → industry → food category directory tree."""

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from app.services.company_store import Company
from app.views.html import slugify_ascii

DEFAULT_CITY = "未分类城市"
DEFAULT_INDUSTRY = "其他"
FOOD_INDUSTRY = "餐饮与服务"
ENTERPRISE_INDUSTRY = "中资企业"
DEFAULT_FOOD_CATEGORY = "中餐"

FOOD_CATEGORIES = ["中餐", "火锅", "面馆", "烧烤", "饮品", "超市"]

# Pinned to the front of the city list, in this order
PRIORITY_CITIES = {"墨西哥城": 0, "蒙特雷": 1}

HOTPOT_RE = re.compile(r"火锅|hot\s*pot|hotpot|麻辣烫|串串香", re.IGNORECASE)
NOODLE_RE = re.compile(r"面馆|拉面|ramen|noodle|noodles|牛肉面|兰州|刀削面|米线", re.IGNORECASE)
BBQ_RE = re.compile(r"烧烤|串串|烤肉|bbq|barbecue|烤鱼", re.IGNORECASE)
DRINKS_RE = re.compile(r"茶|奶茶|饮品|咖啡|coffee|bubble\s*tea", re.IGNORECASE)
GROCERY_RE = re.compile(r"超市|便利|market|grocery", re.IGNORECASE)

_PAGE_RULES = [
    (HOTPOT_RE, "火锅"),
    (NOODLE_RE, "面馆"),
    (BBQ_RE, "烧烤"),
]
_EXTENDED_RULES = _PAGE_RULES + [
    (DRINKS_RE, "饮品"),
    (GROCERY_RE, "超市"),
]

# Restaurant city pages: URL slug → city names the data may use
RESTAURANT_CITY_ALIASES: dict[str, list[str]] = {
    "mexico-city": ["墨西哥城", "墨西哥市", "mexico city", "ciudad de mexico", "ciudad de méxico", "cdmx"],
    "monterrey": ["蒙特雷", "monterrey"],
    "guadalajara": ["瓜达拉哈拉", "guadalajara"],
    "puebla": ["普埃布拉", "puebla"],
}


def _classify(company: Company, rules) -> str:
    if company.category:
        return company.category
    text = f"{company.name} {company.summary}".lower()
    for pattern, category in rules:
        if pattern.search(text):
            return category
    return DEFAULT_FOOD_CATEGORY


def classify_food_category(company: Company) -> str:
    """Food category shown on directory pages: hot pot, then noodles, then barbecue."""
    return _classify(company, _PAGE_RULES)


def classify_food_category_extended(company: Company) -> str:
    """Like ``classify_food_category`` but also recognises drinks and groceries."""
    return _classify(company, _EXTENDED_RULES)


def is_restaurant(company: Company) -> bool:
    return company.industry == FOOD_INDUSTRY


def is_enterprise(company: Company) -> bool:
    return company.industry == ENTERPRISE_INDUSTRY


def restaurant_city_slug(city: str) -> str:
    """URL slug of a known restaurant city, or ``""``."""
    normalized = (city or "").strip().lower()
    for slug, aliases in RESTAURANT_CITY_ALIASES.items():
        if normalized in aliases:
            return slug
    return ""


def city_matches_slug(city: str, city_slug: str) -> bool:
    return bool(city_slug) and restaurant_city_slug(city) == city_slug


def restaurant_city_filter(city_slug: str) -> Callable[[Company], bool]:
    def _filter(company: Company) -> bool:
        return is_restaurant(company) and city_matches_slug(company.city, city_slug)

    return _filter


def city_anchor_id(city: str, position: int) -> str:
    """DOM id of a city section; ``position`` is 0-based in display order."""
    slug = slugify_ascii(city)
    return f"city-{slug}" if slug else f"city-{position + 1}"


@dataclass
class CategoryGroup:
    name: str
    companies: list[Company] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.companies)


@dataclass
class IndustryGroup:
    name: str
    companies: list[Company] = field(default_factory=list)
    categories: list[CategoryGroup] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.companies)

    @property
    def is_food(self) -> bool:
        return self.name == FOOD_INDUSTRY


@dataclass
class CityGroup:
    name: str
    anchor_id: str
    industries: list[IndustryGroup] = field(default_factory=list)

    @property
    def count(self) -> int:
        return sum(industry.count for industry in self.industries)

    def industry(self, name: str) -> IndustryGroup | None:
        for group in self.industries:
            if group.name == name:
                return group
        return None


@dataclass
class DirectoryIndex:
    cities: list[CityGroup]
    total: int


def _priority_sort(names: list[str], priority: dict[str, int]) -> list[str]:
    # sorted() is stable, so unpinned names keep first-seen order
    return sorted(names, key=lambda name: priority.get(name, len(priority)))


def _group_categories(companies: list[Company]) -> list[CategoryGroup]:
    groups: dict[str, CategoryGroup] = {}
    for company in companies:
        category = classify_food_category(company) or DEFAULT_INDUSTRY
        groups.setdefault(category, CategoryGroup(category)).companies.append(company)
    category_priority = {name: index for index, name in enumerate(FOOD_CATEGORIES)}
    return [groups[name] for name in _priority_sort(list(groups), category_priority)]


def build_directory(companies: Iterable[Company]) -> DirectoryIndex:
    """Partition companies by city, industry and (for food) category.

    Cities, industries and categories keep first-seen order except for the
    pinned cities and the fixed food category order.
    """
    cities: dict[str, dict[str, list[Company]]] = {}
    total = 0
    for company in companies:
        city = company.city or DEFAULT_CITY
        industry = company.industry or DEFAULT_INDUSTRY
        cities.setdefault(city, {}).setdefault(industry, []).append(company)
        total += 1

    groups = []
    for position, city in enumerate(_priority_sort(list(cities), PRIORITY_CITIES)):
        city_group = CityGroup(name=city, anchor_id=city_anchor_id(city, position))
        for industry, members in cities[city].items():
            industry_group = IndustryGroup(name=industry, companies=members)
            if industry_group.is_food:
                industry_group.categories = _group_categories(members)
            city_group.industries.append(industry_group)
        groups.append(city_group)
    return DirectoryIndex(cities=groups, total=total)
