"""Shared fixtures: a real board store and in-memory git/GitHub ports."""

import pytest

from projectboard.lib.errors import NothingToCommitError, RemoteReviewError, VersionControlError
from projectboard.lib.types import PRState, PullRequest, PushOutcome
from projectboard.storage.db import BoardStore
from projectboard.workflow.orchestrator import Orchestrator


class FakeVCS:
    """Working tree and remote kept in dicts. Set fail_on to make one call raise."""

    def __init__(self):
        self.branches = {"main"}
        self.current = "main"
        self.staged = []
        self.commits = {}  # sha -> branch
        self.pushed = {}  # branch -> number of commits on remote
        self.calls = []
        self.fail_on = {}
        self.name = "Dana"
        self.dirty = False

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise self.fail_on.pop(name)

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    def branch_exists(self, name):
        return name in self.branches

    def current_branch(self):
        return self.current

    def commit_exists(self, sha):
        return sha in self.commits

    def is_ancestor(self, sha, branch):
        return self.commits.get(sha) == branch

    def staged_files(self):
        return list(self.staged)

    def ahead_behind(self, branch):
        return None

    def is_working_tree_dirty(self):
        return self.dirty

    def user_name(self):
        return self.name

    def create_and_checkout_branch(self, name):
        self._call("create_and_checkout_branch", name)
        if name in self.branches:
            raise VersionControlError(f"Failed to create branch {name}", stderr="already exists")
        self.branches.add(name)
        self.current = name

    def checkout_branch(self, name):
        self._call("checkout_branch", name)
        self.current = name

    def stage_all(self):
        self._call("stage_all")
        self.staged.append("all")

    def commit(self, message):
        self._call("commit", message)
        if not self.staged:
            raise NothingToCommitError()
        sha = f"{len(self.commits) + 1:040x}"
        self.commits[sha] = self.current
        self.staged = []
        return sha

    def push(self, branch):
        self._call("push", branch)
        local = sum(1 for b in self.commits.values() if b == branch)
        if self.pushed.get(branch) == local:
            return PushOutcome.ALREADY_UP_TO_DATE
        self.pushed[branch] = local
        return PushOutcome.PUSHED


class FakeRemote:
    """Pull requests by head branch."""

    def __init__(self):
        self.prs = {}
        self.calls = []
        self.fail_on = {}
        self.authenticated = True

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise self.fail_on.pop(name)

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    def check_auth(self):
        self._call("check_auth")

    def create_pr(self, branch, title, body):
        self._call("create_pr", branch, title, body)
        number = len(self.prs) + 1
        pr = PullRequest(url=f"https://github.com/octo/board/pull/{number}", number=number, state=PRState.OPEN)
        self.prs[branch] = pr
        return pr

    def find_pr(self, branch):
        self._call("find_pr", branch)
        return self.prs.get(branch)

    def get_status(self, pr_ref):
        self._call("get_status", pr_ref)
        for pr in self.prs.values():
            if pr.url == pr_ref:
                return pr.state
        raise RemoteReviewError(f"Checking PR {pr_ref}: not found")


@pytest.fixture
def store(tmp_path):
    s = BoardStore(tmp_path / ".projectboard" / "board.sqlite")
    s.seed_columns()
    yield s
    s.close()


@pytest.fixture
def vcs():
    return FakeVCS()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def orch(store, vcs, remote):
    return Orchestrator(store, vcs, remote)
