class VCSProvider:
    async def get_repo(self, owner, repo):
        raise NotImplementedError

    async def get_ref_sha(self, owner, repo, kind, name):
        raise NotImplementedError

    async def expand_commit_sha(self, owner, repo, sha):
        raise NotImplementedError

    async def get_commit_tree_sha(self, owner, repo, commit_sha):
        raise NotImplementedError

    async def get_tree(self, owner, repo, tree_sha):
        raise NotImplementedError

    async def get_raw_file(self, owner, repo, path, ref):
        raise NotImplementedError

    async def compare(self, owner, repo, base, head):
        raise NotImplementedError
