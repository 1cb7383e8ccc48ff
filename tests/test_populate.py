"""Tests for populating shapes from response data."""

from datetime import datetime
from typing import Annotated, Optional

import pytest
from pydantic import BaseModel, Field, ValidationError

from gql_shape.core.populate import populate
from gql_shape.core.scalars import ScalarCodec
from gql_shape.core.shape import gql


class GitTimestamp(ScalarCodec):
    def __init__(self, value: datetime):
        self.value = value

    @classmethod
    def decode_graphql(cls, value):
        return cls(datetime.fromisoformat(value.replace("Z", "+00:00")))


class Repository(BaseModel):
    name_with_owner: str
    stargazer_count: int
    pushed_at: Optional[GitTimestamp] = None


class User(BaseModel):
    login: str


class RepositoryQuery(BaseModel):
    repository: Annotated[Repository, gql('repository(owner:"octocat",name:"Hello-World")')]
    me: Annotated[Optional[User], gql("me:viewer")] = None


class Common(BaseModel):
    id: str
    title: str


class Issue(BaseModel):
    common: Annotated[Common, gql(embed=True)]
    number: int


class IssueFields(BaseModel):
    state: str


class PullFields(BaseModel):
    merged: bool


class NodeResult(BaseModel):
    typename: Annotated[str, gql("__typename")]
    issue: Annotated[Optional[IssueFields], gql("... on Issue")] = None
    pull: Annotated[Optional[PullFields], gql("... on PullRequest")] = None


class NodeQuery(BaseModel):
    node: Annotated[NodeResult, gql('node(id:"I_1")')]


class Labels(BaseModel):
    names: list[str]
    nodes: list[Optional[User]]


class Aliased(BaseModel):
    login_name: str = Field(alias="loginAlias")


class AliasedQuery(BaseModel):
    viewer: Aliased


class TestPopulate:
    """Tests for populate."""

    def test_override_with_arguments(self):
        data = {
            "repository": {"nameWithOwner": "octocat/Hello-World", "stargazerCount": 42},
            "me": None,
        }
        result = populate(data, RepositoryQuery)

        assert isinstance(result, RepositoryQuery)
        assert result.repository.name_with_owner == "octocat/Hello-World"
        assert result.repository.stargazer_count == 42
        assert result.me is None

    def test_alias_override(self):
        data = {
            "repository": {"nameWithOwner": "a/b", "stargazerCount": 1},
            "me": {"login": "octocat"},
        }
        result = populate(data, RepositoryQuery)
        assert result.me.login == "octocat"

    def test_embedded_fields_read_from_parent(self):
        result = populate({"id": "I_1", "title": "Bug", "number": 7}, Issue)
        assert result.common.id == "I_1"
        assert result.common.title == "Bug"
        assert result.number == 7

    def test_inline_fragment(self):
        data = {"node": {"__typename": "Issue", "state": "OPEN"}}
        result = populate(data, NodeQuery)
        assert result.node.typename == "Issue"
        assert result.node.issue.state == "OPEN"
        assert result.node.pull is None

    def test_only_matching_fragment_is_populated(self):
        result = populate({"node": {"__typename": "PullRequest", "merged": True}}, NodeQuery)
        assert result.node.typename == "PullRequest"
        assert result.node.issue is None
        assert result.node.pull.merged is True

    def test_fragment_matches_through_embedded_fields(self):
        class Titled(BaseModel):
            common: Annotated[Common, gql(embed=True)]

        class Searched(BaseModel):
            typename: Annotated[str, gql("__typename")]
            titled: Annotated[Optional[Titled], gql("... on Issue")] = None
            pull: Annotated[Optional[PullFields], gql("... on PullRequest")] = None

        result = populate({"__typename": "Issue", "id": "I_1", "title": "Bug"}, Searched)
        assert result.titled.common.title == "Bug"
        assert result.pull is None

    def test_lists(self):
        data = {"names": ["bug", "help"], "nodes": [{"login": "a"}, None]}
        result = populate(data, Labels)
        assert result.names == ["bug", "help"]
        assert result.nodes[0].login == "a"
        assert result.nodes[1] is None

    def test_list_root(self):
        result = populate([{"login": "a"}, {"login": "b"}], list[User])
        assert [user.login for user in result] == ["a", "b"]

    def test_scalar_codec(self):
        data = {"nameWithOwner": "a/b", "stargazerCount": 0, "pushedAt": "2024-01-15T10:30:00Z"}
        result = populate(data, Repository)
        assert isinstance(result.pushed_at, GitTimestamp)
        assert result.pushed_at.value.year == 2024

    def test_field_alias(self):
        result = populate({"viewer": {"loginName": "octocat"}}, AliasedQuery)
        assert result.viewer.login_name == "octocat"

    def test_unknown_keys_ignored(self):
        result = populate({"login": "a", "extra": 1}, User)
        assert result.login == "a"

    def test_null_data(self):
        assert populate(None, RepositoryQuery) is None

    def test_type_mismatch(self):
        data = {"repository": {"nameWithOwner": "a/b", "stargazerCount": "lots"}}
        with pytest.raises(ValidationError):
            populate(data, RepositoryQuery)

    def test_missing_field(self):
        with pytest.raises(ValidationError):
            populate({"repository": {"nameWithOwner": "a/b"}}, RepositoryQuery)

    def test_object_expected(self):
        with pytest.raises(ValidationError):
            populate({"repository": ["not", "an", "object"]}, RepositoryQuery)
