"""
Packaging script for PyPI.
"""
import setuptools

setuptools.setup(
	name='supercel',
	version='0.1.0',
	packages=['supercel'],
	package_data={
		'supercel': ["grammar.lark"],
	},
	entry_points={
		'console_scripts': ["supercel = supercel.cmdline:main"],
	},
	license='MIT',
	description='An embeddable evaluator for CEL-style expressions with host-computed platform properties',
	long_description=open('README.md').read(),
	long_description_content_type="text/markdown",
	classifiers=[
		"Programming Language :: Python :: 3.9",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
		"Development Status :: 3 - Alpha",
		"Intended Audience :: Developers",
		"Topic :: Software Development :: Interpreters",
		"Environment :: Console",
    ],
	python_requires='>=3.9',
	install_requires=[
		"booze-tools>=0.6.2.1",
		"lark>=1.1.0",
	],
)
