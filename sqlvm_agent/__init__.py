"""Storage agent: HTTPS service that stripes data disks and creates the database on the SQL Server VM."""
