import setuptools

setuptools.setup(
    name='dacpactool',
    version='1.0.0',
    description='Split SQL Server schema scripts into per-object files and tidy deployment scripts',
    author='Tim Golden',
    author_email='tim.golden@global.com',
    python_requires='>=3.8',
    install_requires = ['python-dotenv', 'pyodbc'],
    extras_require = {
        "test" : ['pytest'],
    },
    packages = ["dacpactool"],
    entry_points = {
        "console_scripts" : [
            "dpt=dacpactool.cli:command_line",
        ]
    }
)
