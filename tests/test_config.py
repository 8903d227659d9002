import pytest
import yaml

from webcrawler.errors import ConfigurationError
from webcrawler.extractor import ClassNameRule, ElementStyleRule, MinCharacterRule, TagNameRule
from webcrawler.utils.config import (
    ConfigManager, ContentRulesConfig, CrawlerConfig, PageConfig, config_from_dict
)


def _write(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


def test_defaults_when_sections_missing():
    config = config_from_dict({})
    assert config.crawler.max_depth == 1
    assert config.crawler.worker_count == 15
    assert config.crawler.request_timeout_ms == 10000
    assert config.crawler.user_agent == "WebCrawler/1.0"
    assert config.crawler.index_prefix is None
    assert config.frontier.type == "local"
    assert config.elasticsearch.tenant_id == "default"
    assert config.logging.json is False


def test_load_from_yaml(tmp_path):
    path = _write(tmp_path, {
        'crawler': {
            'seed_urls': ["https://example.com/"],
            'max_depth': 2,
            'worker_count': 4,
            'index_prefix': "pages",
            'content_rules': {'tag_name': "article", 'class_names': "a, b"},
            'pages': [
                {'url_pattern': r"https://example\.com/blog/.*", 'match_all': True,
                 'content_rules': {'style': "display:block", 'min_character': 10}},
            ],
        },
        'frontier': {'type': "shared"},
        'redis': {'host': "redis.local"},
    })
    config = ConfigManager(path).load_config()

    assert config.crawler.max_depth == 2
    assert config.crawler.seed_urls == ["https://example.com/"]
    assert config.frontier.type == "shared"
    assert config.redis.host == "redis.local"
    assert config.redis.port == 6379

    generic = config.crawler.content_rules_for("https://example.com/about")
    assert [type(r) for r in generic] == [TagNameRule, ClassNameRule, ClassNameRule]
    assert [r.class_name for r in generic[1:]] == ["a", "b"]

    blog = config.crawler.content_rules_for("https://example.com/blog/post")
    assert [type(r) for r in blog] == [MinCharacterRule, ElementStyleRule]
    assert config.crawler.match_all_for("https://example.com/blog/post") is True
    assert config.crawler.match_all_for("https://example.com/about") is False


def test_page_pattern_must_match_whole_url():
    config = CrawlerConfig(pages=[
        PageConfig(url_pattern=r"https://example\.com/docs", content_rules=ContentRulesConfig(tag_name="main")),
    ])
    assert config.content_rules_for("https://example.com/docs/more") == []
    assert len(config.content_rules_for("https://example.com/docs")) == 1


def test_invalid_page_pattern_is_ignored():
    config = CrawlerConfig(
        content_rules=ContentRulesConfig(tag_name="p"),
        pages=[PageConfig(url_pattern="([broken", content_rules=ContentRulesConfig(tag_name="div"))],
    )
    rules = config.content_rules_for("https://example.com/")
    assert [r.tag_name for r in rules] == ["p"]


def test_add_page_config_at_runtime():
    config = CrawlerConfig()
    config.add_page_config(PageConfig(url_pattern=".*", content_rules=ContentRulesConfig(tag_name="h1")))
    assert [r.tag_name for r in config.content_rules_for("https://example.com/")] == ["h1"]


def test_blank_user_agent_falls_back():
    assert CrawlerConfig(user_agent="  ").user_agent == "WebCrawler/1.0"


@pytest.mark.parametrize("crawler, frontier", [
    ({'max_depth': -1}, {}),
    ({'request_timeout_ms': 0}, {}),
    ({'worker_count': 0}, {}),
    ({}, {'type': "kafka"}),
])
def test_validation_errors(tmp_path, crawler, frontier):
    path = _write(tmp_path, {'crawler': crawler, 'frontier': frontier})
    with pytest.raises(ConfigurationError):
        ConfigManager(path).load_config()


def test_unknown_key_raises_configuration_error():
    with pytest.raises(ConfigurationError):
        config_from_dict({'redis': {'hostname': "x"}})


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / "absent.yaml")).load_config()
