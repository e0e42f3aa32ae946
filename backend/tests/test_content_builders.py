"""
Tests for the JSON-LD and FAQ builders.
"""

from datetime import date, datetime
from types import SimpleNamespace

from aeo.services.content import (
    Post,
    build_blog_posting_schema,
    build_blog_posting_schemas,
    build_faq_content,
    build_organization_schema,
    build_software_schema,
    extract_topics_from_titles,
    find_relevant_post,
    validate_json_ld_structure,
)
from aeo.services.content.faq_builder import leading_sentences


class TestOrganizationSchema:

    def test_core_fields(self, brand):
        schema = build_organization_schema(brand)

        assert schema["@type"] == "Organization"
        assert schema["name"] == "Matey AI"
        assert schema["url"] == "https://matey.ai"
        assert schema["description"] == "AI discovery review for public defenders."
        assert schema["logo"] == "https://matey.ai/logo.png"
        assert schema["contactPoint"]["email"] == "support@matey.ai"
        assert schema["address"]["addressCountry"] == "US"
        assert validate_json_ld_structure(schema, "organization_ld") == []

    def test_knows_about_merges_recurring_title_topics(self, brand):
        titles = [
            "Discovery Review Checklist",
            "Faster evidence triage",
            "Evidence triage for trial",
            "Legal Transcription tips",
        ]
        schema = build_organization_schema(brand, titles)

        assert schema["knowsAbout"][:2] == ["discovery review", "legal transcription"]
        assert "Evidence" in schema["knowsAbout"]
        assert "Triage" in schema["knowsAbout"]
        assert "Checklist" not in schema["knowsAbout"]

    def test_extract_topics_threshold_and_cap(self):
        titles = ["Alpha beta gamma", "alpha gamma", "Delta alpha"]
        assert extract_topics_from_titles(titles) == ["Alpha", "Gamma"]
        assert extract_topics_from_titles(titles, max_topics=1) == ["Alpha"]
        assert extract_topics_from_titles([]) == []


class TestSoftwareSchema:

    def test_fields(self, brand):
        schema = build_software_schema(brand)

        assert schema["name"] == "Matey AI Platform"
        assert schema["applicationCategory"] == "Legal Technology"
        assert schema["featureList"] == ["Transcription", "Entity search"]
        assert schema["audience"]["audienceType"] == "Public Defenders"
        assert schema["usageInfo"] == "Free for court-appointed matters"
        assert schema["keywords"].startswith("discovery review, legal transcription, Transcription")
        assert validate_json_ld_structure(schema, "software_ld") == []

    def test_sparse_brand(self, brand):
        sparse = brand.model_copy(update={
            "industry": "",
            "target_audiences": [],
            "differentiators": [],
            "product_features": [],
            "topic_pillars": [],
        })
        schema = build_software_schema(sparse)

        assert schema["applicationCategory"] == "Software"
        assert schema["audience"]["audienceType"] == "Professionals"
        assert schema["featureList"] == ["Saves hours"]
        assert "usageInfo" not in schema
        assert "keywords" not in schema


class TestFaqBuilder:

    POSTS = [
        Post("Recipes", "How to bake bread at home."),
        Post(
            "Discovery review for defenders",
            "Matey AI sorts discovery evidence by witness. It transcribes body-cam audio. It is free.",
        ),
    ]

    def test_relevant_post_needs_two_shared_words(self):
        assert find_relevant_post("How does discovery evidence review work?", self.POSTS) is self.POSTS[1]
        assert find_relevant_post("What about discovery?", self.POSTS) is None

    def test_answers_from_posts_or_boilerplate(self, brand):
        schema, markdown = build_faq_content(
            brand,
            ["How does discovery evidence review work?", "What does pricing look like?"],
            self.POSTS,
            today=date(2026, 1, 15),
        )

        entities = schema["mainEntity"]
        assert [e["name"] for e in entities] == [
            "How does discovery evidence review work?",
            "What does pricing look like?",
        ]
        assert entities[0]["acceptedAnswer"]["text"].startswith("Matey AI sorts discovery evidence by witness.")
        assert entities[1]["acceptedAnswer"]["text"] == (
            "Matey AI builds discovery tools for defense teams. Learn more at https://matey.ai."
        )
        assert validate_json_ld_structure(schema, "faq_page") == []

        assert markdown.startswith("# Matey AI - Frequently Asked Questions")
        assert "Last updated: 2026-01-15" in markdown
        assert "## What does pricing look like?" in markdown
        assert markdown.endswith("[Contact Us](https://matey.ai)")

    def test_fallback_entry_without_questions(self, brand):
        schema, _ = build_faq_content(brand, [])

        assert schema["mainEntity"] == [{
            "@type": "Question",
            "name": "What is Matey AI?",
            "acceptedAnswer": {"@type": "Answer", "text": "Matey AI builds discovery tools for defense teams."},
        }]

    def test_without_brand(self):
        schema, markdown = build_faq_content(None, [])

        answer = schema["mainEntity"][0]["acceptedAnswer"]["text"]
        assert answer == "Unknown Brand provides solutions in the technology space."
        assert "[Contact Us](https://example.com)" in markdown

    def test_leading_sentences_respects_limit(self):
        text = "First sentence here. Second one follows. Third is long enough to overflow."
        assert leading_sentences(text, 45) == "First sentence here. Second one follows."
        assert leading_sentences("x" * 50, 10) == "x" * 10


class TestBlogPostingSchema:

    def test_person_author(self, brand):
        schema = build_blog_posting_schema(
            "Discovery at scale",
            "Short intro. More detail follows.",
            datetime(2026, 3, 2, 9, 30),
            brand,
            author="Ada",
        )

        assert schema["author"] == {"@type": "Person", "name": "Ada", "url": "https://matey.ai"}
        assert schema["datePublished"] == "2026-03-02"
        assert schema["description"] == "Short intro. More detail follows."
        assert validate_json_ld_structure(schema, "blog_posting") == []

    def test_organization_author_by_default(self, brand):
        rows = [SimpleNamespace(title="T", content="Body.", author=None, created_at=datetime(2026, 1, 1))]
        [schema] = build_blog_posting_schemas(rows, brand)

        assert schema["author"]["@type"] == "Organization"
        assert schema["author"]["name"] == "Matey AI"
