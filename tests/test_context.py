"""Tests for autotestgen.context."""

from __future__ import annotations

from autotestgen.context import ContextBuilder
from autotestgen.models import FileKind


def test_build_returns_empty_string_without_signal(project_builder) -> None:
    project_builder.write({"lib/util.rb": "module Util\nend\n"})
    builder = ContextBuilder(project_builder.path())

    assert builder.build(project_builder.path("lib/util.rb")) == ""


def test_build_joins_user_note_and_model_migrations(project_builder) -> None:
    project_builder.write(
        {
            "app/models/user.rb": """
                class User < ApplicationRecord
                  has_many :posts
                  belongs_to :account
                end
            """,
            "db/migrate/20240101000000_create_users.rb": "",
            "db/migrate/20240102000000_create_posts.rb": "",
            "db/migrate/20240103000000_create_accounts.rb": "",
            "db/migrate/20240104000000_add_email_to_users.rb": "",
        }
    )
    builder = ContextBuilder(project_builder.path())

    context = builder.build(project_builder.path("app/models/user.rb"), "  Users own accounts  ", kind=FileKind.MODEL)

    parts = context.split("\n\n")
    assert parts[0] == "Users own accounts"
    assert parts[1] == (
        "Recent migrations: 20240102000000_create_posts.rb, "
        "20240103000000_create_accounts.rb, 20240104000000_add_email_to_users.rb"
    )
    assert parts[2] == "Related declarations detected: has_many :posts, belongs_to :account"


def test_project_facts_are_selected_per_path(project_builder) -> None:
    project_builder.write(
        {
            "config/routes.rb": "Rails.application.routes.draw do\nend\n",
            "db/migrate/20240101000000_create_users.rb": "",
            "app/models/user.rb": "class User\nend\n",
            "app/controllers/users_controller.rb": "class UsersController\nend\n",
        }
    )
    builder = ContextBuilder(project_builder.path())

    model_context = builder.build(project_builder.path("app/models/user.rb"), kind=FileKind.MODEL)
    controller_context = builder.build(
        project_builder.path("app/controllers/users_controller.rb"), kind=FileKind.CONTROLLER
    )

    assert "Recent migrations" in model_context
    assert "routes.rb" not in model_context
    assert "routes.rb" in controller_context
    assert "Recent migrations" not in controller_context


def test_project_scan_is_memoised(project_builder) -> None:
    project_builder.write({"db/migrate/20240101000000_create_users.rb": ""})
    builder = ContextBuilder(project_builder.path())

    first = builder.project
    project_builder.write({"db/migrate/20240105000000_create_orders.rb": ""})

    assert builder.project is first
    assert first.recent_migrations == ["20240101000000_create_users.rb"]


def test_related_context_prefers_supplied_source(project_builder) -> None:
    builder = ContextBuilder(project_builder.path())
    related = builder.related_context("missing.rb", source="class Report\n  include Comparable\nend\n")
    assert related == "Related declarations detected: include Comparable"
    assert builder.related_context(project_builder.path("missing.rb")) == ""
