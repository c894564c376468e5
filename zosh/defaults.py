"""
Default contents seeded into a fresh session.

DEFAULT_TREE is ordered so that every parent precedes its children.
"""

_ROOT = {'permissions': 'drwxr-xr-x', 'owner': 'root', 'group': 'wheel'}
_USER = {'permissions': 'drwxr-xr-x', 'owner': 'user', 'group': 'staff'}


def _dir(**meta):
    return dict(meta, type='dir')


def _file(content='', perms='-rw-r--r--', owner='user', group='staff', size=None):
    spec = {'type': 'file', 'content': content, 'permissions': perms,
            'owner': owner, 'group': group}
    if size is not None:
        spec['size'] = size
    return spec


def _binary(size):
    return _file(perms='-rwxr-xr-x', owner='root', group='wheel', size=size)


def _device():
    return _file(perms='crw-rw-rw-', owner='root', group='wheel', size=0)


DEFAULT_TREE = [
    ('/Users', _dir(**_ROOT)),
    ('/Users/user', _dir(**_USER)),
    ('/Users/user/Desktop', _dir(**_USER)),
    ('/Users/user/Desktop/README.txt', _file(
        'Welcome to zOS!\n\nThis is a simulated macOS-style desktop environment.\n'
        'Built with React and TypeScript.\n\nEnjoy exploring!', size=142)),
    ('/Users/user/Documents', _dir(**_USER)),
    ('/Users/user/Documents/notes.md', _file(
        '# Notes\n\n## TODO\n- Build zOS\n- Add more features\n- Ship it!\n\n'
        '## Ideas\n- Virtual file system\n- More apps\n- Cloud sync', size=128)),
    ('/Users/user/Documents/projects', _dir(**_USER)),
    ('/Users/user/Documents/projects/zos', _dir(**_USER)),
    ('/Users/user/Documents/projects/hanzo', _dir(**_USER)),
    ('/Users/user/Documents/projects/lux', _dir(**_USER)),
    ('/Users/user/Downloads', _dir(**_USER)),
    ('/Users/user/Music', _dir(**_USER)),
    ('/Users/user/Music/playlist.m3u', _file(
        '#EXTM3U\n#EXTINF:180,Track 1\ntrack1.mp3\n#EXTINF:240,Track 2\ntrack2.mp3',
        size=89)),
    ('/Users/user/Pictures', _dir(**_USER)),
    ('/Users/user/Pictures/wallpaper.png', _file('[binary image data]', size=2048576)),
    ('/Users/user/Pictures/screenshot.png', _file('[binary image data]', size=1024000)),
    ('/Users/user/Videos', _dir(**_USER)),
    ('/Users/user/.zshrc', _file(
        '# zOS zshrc\nexport PATH="/usr/local/bin:$PATH"\nexport EDITOR=vim\n'
        'alias ll="ls -la"\nalias la="ls -a"\nalias l="ls -CF"\n\n'
        '# Prompt\nPS1="%n@%m:%~$ "', size=186)),
    ('/Users/user/.bashrc', _file(
        '# zOS bashrc\nexport PATH="/usr/local/bin:$PATH"\nalias ll="ls -la"',
        size=78)),
    ('/Users/user/.profile', _file(
        '# zOS profile\n[ -f ~/.zshrc ] && source ~/.zshrc', size=52)),
    ('/Applications', _dir(permissions='drwxr-xr-x', owner='root', group='admin')),
    ('/Applications/Safari.app', _dir(**_ROOT)),
    ('/Applications/Terminal.app', _dir(**_ROOT)),
    ('/Applications/Finder.app', _dir(**_ROOT)),
    ('/Applications/Mail.app', _dir(**_ROOT)),
    ('/System', _dir(**_ROOT)),
    ('/System/Library', _dir(**_ROOT)),
    ('/Library', _dir(**_ROOT)),
    ('/Library/Preferences', _dir(**_ROOT)),
    ('/bin', _dir(**_ROOT)),
    ('/bin/ls', _binary(51856)),
    ('/bin/cat', _binary(23648)),
    ('/bin/echo', _binary(14432)),
    ('/bin/pwd', _binary(14416)),
    ('/bin/cd', _binary(14400)),
    ('/bin/mkdir', _binary(18528)),
    ('/bin/rm', _binary(18560)),
    ('/bin/cp', _binary(26752)),
    ('/bin/mv', _binary(26736)),
    ('/bin/zsh', _binary(1296464)),
    ('/bin/bash', _binary(1296464)),
    ('/usr', _dir(**_ROOT)),
    ('/usr/bin', _dir(**_ROOT)),
    ('/usr/bin/vim', _binary(3145728)),
    ('/usr/bin/grep', _binary(163024)),
    ('/usr/bin/find', _binary(108800)),
    ('/usr/bin/which', _binary(14416)),
    ('/usr/local', _dir(**_ROOT)),
    ('/usr/local/bin', _dir(**_ROOT)),
    ('/etc', _dir(**_ROOT)),
    ('/etc/hosts', _file(
        '##\n# Host Database\n##\n127.0.0.1\tlocalhost\n'
        '255.255.255.255\tbroadcasthost\n::1\tlocalhost',
        owner='root', group='wheel', size=89)),
    ('/etc/passwd', _file(
        'root:*:0:0:System Administrator:/var/root:/bin/zsh\n'
        'user:*:501:20:User:/Users/user:/bin/zsh',
        owner='root', group='wheel', size=94)),
    ('/etc/shells', _file('/bin/bash\n/bin/zsh\n/bin/sh',
                          owner='root', group='wheel', size=27)),
    ('/tmp', _dir(permissions='drwxrwxrwt', owner='root', group='wheel')),
    ('/var', _dir(**_ROOT)),
    ('/var/log', _dir(**_ROOT)),
    ('/var/log/system.log', _file(
        'Dec 25 10:00:00 zos kernel[0]: zOS initialized\n'
        'Dec 25 10:00:01 zos kernel[0]: All systems operational',
        perms='-rw-r-----', owner='root', group='wheel', size=104)),
    ('/dev', _dir(**_ROOT)),
    ('/dev/null', _device()),
    ('/dev/zero', _device()),
    ('/dev/random', _device()),
    ('/proc', _dir(permissions='dr-xr-xr-x', owner='root', group='wheel')),
]

DEFAULT_ENV = {
    'HOME': '/Users/user',
    'USER': 'user',
    'SHELL': '/bin/zsh',
    'PATH': '/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin',
    'PWD': '/Users/user',
    'TERM': 'xterm-256color',
    'LANG': 'en_US.UTF-8',
    'EDITOR': 'vim',
    'HOSTNAME': 'zos.local',
    'LOGNAME': 'user',
    'TMPDIR': '/tmp',
    'PS1': '%n@%m:%~$ ',
}

DEFAULT_ALIASES = {
    'll': 'ls -la',
    'la': 'ls -a',
    'l': 'ls -CF',
    '..': 'cd ..',
    '...': 'cd ../..',
    'cls': 'clear',
    'h': 'history',
    'md': 'mkdir',
    'rd': 'rmdir',
}
