from setuptools import find_packages, setup


setup(
    name="student-records-admin",
    version="0.1.0",
    description="Flask admin backend for student records with a bulk CSV import pipeline.",
    package_dir={"": "src"},
    packages=find_packages("src"),
    py_modules=["config", "run"],
    package_data={"db": ["migrations/*.sql"]},
    include_package_data=True,
    install_requires=[
        "Flask",
        "psycopg",
        "Werkzeug",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.10",
)
