"""
Shell integration printed by ``git-zoxide init``.

Add ``source <(git-zoxide init)`` to ~/.zshrc. The wrapper ``cd``s into the
path printed by ``home`` and ``jump``; completion is fed by ``list``.
"""

DEFAULT_CMD = "gz"
DEFAULT_HOME_CMD = "zz"
DEFAULT_JUMP_CMD = "zj"

_COMPLETION = r"""
_GIT_ZOXIDE_CMDS=( \
	"attach" \
	"config" \
	"detach" \
	"home" \
	"jump" \
	"list" \
	"remove" \
)

_git-zoxide() {
	if [ "${#words[@]}" -eq "2" ]; then
		_alternative "arguments::($_GIT_ZOXIDE_CMDS)"
		return
	fi

	local cmd=${words[1]}
	local action=${words[2]}
	case $action in
		attach)
			_git-zoxide_cmp_remote
			_git-zoxide_cmp_group
			;;
		home|remove)
			_git-zoxide_cmp_remote
			_git-zoxide_cmp_repo
			;;
		jump)
			_git-zoxide_cmp_keyword
			;;
		list)
			_git-zoxide_cmp_remote
			;;
	esac
	if (( ${#words[@]} > 4 )); then
		_arguments '*:dir:_dirs'
	fi
}

_git-zoxide_cmp_remote() {
	if [ "${#words[@]}" -eq "3" ]; then
		local remotes=($($cmd list))
		_describe 'command' remotes
	fi
}

_git-zoxide_cmp_repo() {
	if [ "${#words[@]}" -eq "4" ]; then
		local remote=${words[3]}
		local repos=($($cmd list ${remote} 2>/dev/null))
		_describe 'command' repos
	fi
}

_git-zoxide_cmp_group() {
	if [ "${#words[@]}" -eq "4" ]; then
		local remote=${words[3]}
		local groups=($($cmd list ${remote} --group 2>/dev/null))
		_describe 'command' groups -S ''
	fi
}

_git-zoxide_cmp_keyword() {
	if [ "${#words[@]}" -eq "3" ]; then
		local keywords=($($cmd list --keyword 2>/dev/null))
		_describe 'command' keywords
	fi
}

compdef _git-zoxide git-zoxide
"""

_INIT = r"""
_git-zoxide_cd() {
	if ret_path=$(git-zoxide $@); then
		if [ -d $ret_path ]; then
			cd $ret_path
			return
		fi
		if [ ! -z $ret_path ]; then
			echo $ret_path
		fi
		return
	fi
	return 1
}

{{CMD}}() {
	case "$1" in
		home|jump)
			_git-zoxide_cd $@
			;;
		*)
			git-zoxide $@
			;;
	esac
	return $?
}

compdef _git-zoxide {{CMD}}
alias {{HOME_CMD}}='{{CMD}} home'
alias {{JUMP_CMD}}='{{CMD}} jump'
"""


def render_init(
    cmd: str = DEFAULT_CMD,
    home_cmd: str = DEFAULT_HOME_CMD,
    jump_cmd: str = DEFAULT_JUMP_CMD,
) -> str:
    """Completion functions followed by the wrapper function and aliases."""
    init = (
        _INIT.replace("{{CMD}}", cmd)
        .replace("{{HOME_CMD}}", home_cmd)
        .replace("{{JUMP_CMD}}", jump_cmd)
    )
    return _COMPLETION.strip() + "\n\n" + init.strip() + "\n"
