# tests/conftest.py
"""Shared Go sources, juice configurations and fixtures."""

import textwrap

import pytest

from juicegen.context import ApiVersion, GenerationContext
from juicegen.function import Function
from juicegen.goast import GoType, Method, Param, ValueGroup
from juicegen.parser import parse_interface
from juicegen.registry import StatementRegistry


NAMESPACE = "repo.UserRepository"

USER_REPOSITORY_GO = textwrap.dedent("""\
    package repo

    import (
    \t"context"
    \t"database/sql"
    \t"strings"

    \t"github.com/acme/shop/model"
    \t"github.com/go-juicedev/juice"
    )

    // UserRepository persists users.
    type UserRepository interface {
    \t// GetByID loads one user.
    \tGetByID(ctx context.Context, id int64) (*model.User, error)
    \tList(ctx context.Context) ([]*model.User, error)
    \tCount(ctx context.Context) (int64, error)
    \tCreate(ctx context.Context, user *model.User) error
    \tDelete(ctx context.Context, id int64) (sql.Result, error)
    \tRename(ctx context.Context, id int64, name string) error
    \tArchive(ctx context.Context) error
    }

    var _ = strings.TrimSpace
    """)

USER_REPOSITORY_XML = textwrap.dedent("""\
    <?xml version="1.0" encoding="UTF-8"?>
    <configuration>
        <environments default="prod">
            <environment id="prod">
                <dataSource>root:qwe123@tcp(localhost:3306)/shop</dataSource>
                <driver>mysql</driver>
            </environment>
        </environments>
        <mappers>
            <mapper namespace="repo.UserRepository">
                <select id="GetByID">select * from user where id = #{id}</select>
                <select id="List">select * from user</select>
                <select id="Count">select count(*) from user</select>
                <insert id="Create" useGeneratedKeys="true">
                    insert into user (name) values (#{name})
                </insert>
                <delete id="Delete">delete from user where id = #{id}</delete>
                <update id="Rename">update user set name = #{name} where id = #{id}</update>
                <update id="Archive" gen="false">update user set archived = 1</update>
            </mapper>
        </mappers>
    </configuration>
    """)

EXPECTED_V1 = textwrap.dedent("""\
    // Code generated by "juicegen"; DO NOT EDIT.

    package repo

    import (
    \t"context"
    \t"database/sql"

    \t"github.com/acme/shop/model"
    \t"github.com/go-juicedev/juice"
    )

    type UserRepositoryImpl struct{}

    var _ UserRepository = (*UserRepositoryImpl)(nil)

    func (u UserRepositoryImpl) GetByID(ctx context.Context, id int64) (*model.User, error) {
    \tret, err := juice.QueryContext[model.User](ctx, UserRepository(u).GetByID, juice.H{"id": id})
    \tif err != nil {
    \t\treturn nil, err
    \t}
    \treturn &ret, nil
    }

    func (u UserRepositoryImpl) List(ctx context.Context) ([]*model.User, error) {
    \treturn juice.QueryList2Context[model.User](ctx, UserRepository(u).List, nil)
    }

    func (u UserRepositoryImpl) Count(ctx context.Context) (int64, error) {
    \treturn juice.QueryContext[int64](ctx, UserRepository(u).Count, nil)
    }

    func (u UserRepositoryImpl) Create(ctx context.Context, user *model.User) error {
    \t_, err := juice.ExecContext(ctx, UserRepository(u).Create, user)
    \treturn err
    }

    func (u UserRepositoryImpl) Delete(ctx context.Context, id int64) (sql.Result, error) {
    \treturn juice.ExecContext(ctx, UserRepository(u).Delete, juice.H{"id": id})
    }

    func (u UserRepositoryImpl) Rename(ctx context.Context, id int64, name string) error {
    \t_, err := juice.ExecContext(ctx, UserRepository(u).Rename, juice.H{"id": id, "name": name})
    \treturn err
    }

    // NewUserRepository returns a new UserRepository.
    func NewUserRepository() UserRepository {
    \treturn &UserRepositoryImpl{}
    }
    """)

GO_MOD = "module github.com/acme/shop\n\ngo 1.22\n"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def named(text):
    """GoType for a bare or qualified type name."""
    package, _, name = text.rpartition(".")
    return GoType.named(name, package)


def param(name, type_):
    return Param(name, type_ if isinstance(type_, GoType) else named(type_))


def method(name, params=(), results=()):
    return Method(
        name=name,
        params=ValueGroup.named(param(n, t) for n, t in params),
        results=ValueGroup(param("", t) for t in results),
    )


def function(m, receiver="UserRepositoryImpl", typename="UserRepository"):
    return Function(method=m, receiver=receiver, typename=typename)


def mapper_xml(body, namespace=NAMESPACE):
    return (
        "<configuration><mappers>"
        f'<mapper namespace="{namespace}">{body}</mapper>'
        "</mappers></configuration>"
    )


def statement(tag, ident="Stmt", namespace=NAMESPACE, **attrs):
    """A single registered statement."""
    extra = "".join(f' {k}="{v}"' for k, v in attrs.items())
    registry = StatementRegistry.from_string(
        mapper_xml(f'<{tag} id="{ident}"{extra}>sql</{tag}>', namespace)
    )
    return registry.lookup(f"{namespace}.{ident}")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def user_interface():
    return parse_interface(USER_REPOSITORY_GO, "UserRepository", "repo/user.go")


@pytest.fixture(scope="module")
def user_registry():
    return StatementRegistry.from_string(USER_REPOSITORY_XML)


@pytest.fixture
def v1_context():
    return GenerationContext(ApiVersion.V1, "UserRepository", NAMESPACE)


@pytest.fixture
def v2_context():
    return GenerationContext(ApiVersion.V2, "UserRepository", NAMESPACE)


@pytest.fixture
def go_project(tmp_path):
    """A Go module with the user repository under ``repo/`` and a juice.xml."""
    (tmp_path / "go.mod").write_text(GO_MOD, encoding="utf-8")
    package = tmp_path / "repo"
    package.mkdir()
    (package / "user.go").write_text(USER_REPOSITORY_GO, encoding="utf-8")
    (package / "user_test.go").write_text(
        "package repo\n\ntype UserRepository interface{ Broken( }\n", encoding="utf-8"
    )
    (package / "juice.xml").write_text(
        USER_REPOSITORY_XML.replace(
            'namespace="repo.UserRepository"',
            'namespace="github.com.acme.shop.repo.UserRepository"',
        ),
        encoding="utf-8",
    )
    return tmp_path
