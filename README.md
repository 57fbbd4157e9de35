# minishell

A small interactive command shell. It reads a line at a prompt and checks its
syntax. It then expands variables and splits the line into a pipeline. Each
command runs as a built-in or as an external program found on `PATH`.

## Installing

```
pip install .
```

## Running

```
minishell
```

The prompt is `minishell$> `. Press Ctrl-D to leave. The shell prints `exit`
and returns the status of the last command. Ctrl-C at the prompt discards the
line and sets the status to 130.

The shell takes no arguments. If you pass any, it reports
`minishell: no args needed` on standard error and returns status 1.

## What it understands

- **Pipelines**: `ls -l | grep py | wc -l`. Every stage runs side by side. The
  pipeline takes the status of its last stage.
- **Redirections**: `< file`, `> file`, `>> file`, and here-documents with
  `<< LIMIT`.
  - Redirections are opened in order, and later ones replace earlier ones.
  - A redirection whose target is an unset variable is reported as
    `ambiguous redirect`.
- **Here-documents**:
  - They are read as soon as the line is parsed. A temporary hidden file holds
    each one until the line has run.
  - A quoted limiter turns off `$` expansion inside the document.
  - End of input before the limiter ends the document with a warning.
  - After 17 here-documents on one line, the next redirection is refused. The
    shell prints `minishell: maximum here-document count exceeded` and exits
    with status 2.
- **Quotes**: single quotes keep their text as it is. Double quotes still
  expand `$NAME`. A quote left open is refused with `unclosed qoute`.
- **Expansion**:
  - `$NAME` gives the variable's value. An unset variable expands to nothing.
  - `$?` gives the last exit status.
  - `$_` gives the last argument of the previous single command.
- **Refused characters**: `*`, `;`, `(`, `)` and `&` outside quotes are syntax
  errors. So is an operator followed by another operator, or a line that
  starts or ends with `|`. The error is printed, nothing runs and the status
  becomes 2.

## Built-in commands

| command  | behaviour |
|----------|-----------|
| `echo`   | prints its arguments; one or more leading `-n`, `-nn`, … flags suppress the newline |
| `cd`     | changes directory; no argument or `~` goes to `$HOME`, `-` goes to `$OLDPWD` and prints the new directory; updates `PWD` and `OLDPWD` when they exist |
| `pwd`    | prints the working directory |
| `env`    | prints the variables that have a value; any argument is an error (status 127) |
| `export` | sets `NAME=value`, appends with `NAME+=value`, declares `NAME`, or with no arguments lists every variable sorted as `declare -x` lines |
| `unset`  | removes variables; an invalid name sets status 1 |
| `exit`   | leaves the shell with an optional numeric status; a non-numeric argument exits with 2, too many arguments sets 1 and stays |

A lone built-in runs inside the shell itself, so `cd`, `export`, `unset` and
`exit` take effect. A built-in inside a pipeline works on a copy of the shell's
state, and its changes are lost.

## Exit statuses

| status | meaning |
|--------|---------|
| 1      | a redirection failed, or a built-in reported an error |
| 2      | syntax error |
| 126    | the command is not executable, or is a directory |
| 127    | the command was not found |
| 130    | interrupted with Ctrl-C |
| 128 + n | the command was killed by signal n (131 for Ctrl-\\, reported as `Quit (core dumped)`) |

## Using it from Python

```python
from minishell.state import ShellState
from minishell.shell import run_line

lines = iter(["hello", "EOF"])

def read_line(prompt):
    return next(lines, None)

state = ShellState.from_environ({"HOME": "/tmp", "PATH": "/usr/bin:/bin"}, "/tmp")
run_line("export GREETING=hello", state, read_line)
print(state.environment.get("GREETING"))   # hello
run_line("cat << EOF", state, read_line)   # prints: hello
```

`run_line(line, state, read_line)` parses and runs one line and returns the
exit status it leaves. `read_line` is used for here-documents. It is called
with the prompt `"> "` and returns the next line, or `None` at end of input.
A line that asks the shell to stop raises `minishell.builtins.ShellExit`,
whose `status` holds the exit status.

The steps are also available one by one:

- `minishell.parser.parse_line` gives a list of `Command` objects, each with
  `args` and `redirections`.
- `minishell.executor.execute` runs them.
- `minishell.executor.cleanup` removes their here-document files.

## What it does not do

- It has no glob patterns, `;`, `&&`, `||`, `&` background jobs, subshells or
  backslash escapes.
- It does not run script files.
- It has no job control.
- Command history is kept only for the session, when Python's `readline`
  module is available.